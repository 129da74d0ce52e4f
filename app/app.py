"""
Module-level application instance.

WSGI servers (e.g. `gunicorn app.app:app`) and `run.py` import `app` from
here. Tests build their own instances with `create_app` instead.
"""
import os
from app import create_app

app = create_app()

if __name__ == '__main__':
    # Development server only; debug is off when FLASK_ENV=production.
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")),
            debug=os.environ.get("FLASK_ENV") != "production")
