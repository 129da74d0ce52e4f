"""
Main entry point for running the Flask application in development.

For production deployments, point a WSGI server such as Gunicorn at
`app.app:app` instead of executing this script.
"""
import os
from app.app import app

if __name__ == '__main__':
    # debug=True enables the interactive debugger and auto-reloader.
    # Never enable it in production.
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")), debug=True)
