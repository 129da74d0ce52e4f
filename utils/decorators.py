"""
Custom decorators for Flask view functions.

This module provides the `login_required` decorator used on every page that
needs a signed-in user (adding or editing stores, hearts, reviews, the account
page).
"""
from functools import wraps
from flask import g, redirect, url_for, flash


def login_required(f):
    """
    Decorator to ensure that a user is logged in before accessing a route.

    The current user is loaded into `g.user` before every request (see
    `routes.auth.load_logged_in_user`). When it is missing, a warning is
    flashed and the visitor is sent to the login page.

    Args:
        f (callable): The view function to be decorated.

    Returns:
        callable: The decorated function.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            flash("Oops you must be logged in to do that!", "danger")
            return redirect(url_for('auth_bp.login'))
        return f(*args, **kwargs)
    return decorated_function
