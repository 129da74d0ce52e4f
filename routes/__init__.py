# routes/__init__.py

from routes.stores import stores_bp
from routes.auth import auth_bp
from routes.account import account_bp
from routes.reviews import reviews_bp
from routes.api import api_bp

blueprints = [
    stores_bp,
    auth_bp,
    account_bp,
    reviews_bp,
    api_bp
]
