"""
Flask extension instantiations.

Extensions are created here without an app and bound inside the application
factory (`create_app` in app/__init__.py) with `init_app(app)`. Keeping them in
their own module lets blueprints import them without importing the app package
itself, which avoids circular imports.
"""
from flask_jwt_extended import JWTManager
from flask_wtf.csrf import CSRFProtect

# Bearer tokens for non-browser API clients (see routes/api.py).
jwt = JWTManager()

# CSRF protection for every HTML form post. The JSON API blueprint is exempted
# from the global check and calls `csrf.protect()` itself for cookie-authenticated requests.
csrf = CSRFProtect()
