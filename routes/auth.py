"""
Authentication routes for registration, login, logout and password reset.

This module defines the Flask Blueprint for authentication-related endpoints.
It also loads the signed-in user into `g.user` before every request so views,
decorators and templates can use it.
"""
import secrets
import sqlite3
from datetime import datetime, timezone

from flask import Blueprint, request, redirect, url_for, render_template, session, flash, current_app, g

from app.mail import send_password_reset
from app.models import user as user_model
from utils.session_helpers import login_user, logout_user
from utils.validation import validate_registration, passwords_match

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.before_app_request
def load_logged_in_user():
    """
    Loads the user referenced by the session into `g.user` (None when anonymous).

    A session pointing at a deleted account is cleared.
    """
    user_id = session.get('user_id')
    g.user = user_model.get_user(user_id) if user_id is not None else None
    if user_id is not None and g.user is None:
        current_app.logger.warning("Session referenced a missing user; clearing it.", extra={'user_id': user_id})
        session.clear()


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """
    GET: Displays the login form.
    POST: Authenticates the e-mail/password pair and starts a session.
    """
    if request.method == 'POST':
        email = request.form.get('email', '')
        user = user_model.authenticate(email, request.form.get('password', ''))
        if user is None:
            current_app.logger.warning("Failed login attempt.", extra={'email_attempt': email})
            flash('Failed Login!', 'danger')
            return redirect(url_for('auth_bp.login'))

        login_user(user)
        current_app.logger.info("User logged in.", extra={'user_id': user['id'], 'user_email': user['email']})
        flash('You are now logged in!', 'success')
        return redirect(url_for('stores_bp.index'))

    return render_template('login.html', title='Login')


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """
    GET: Displays the registration form.
    POST: Validates the form, creates the account and logs the new user in.
    """
    if request.method == 'POST':
        data, errors = validate_registration(request.form)
        if errors:
            for message in errors:
                flash(message, 'danger')
            return render_template('register.html', title='Register', form=request.form), 400

        try:
            user_id = user_model.create_user(data['email'], data['name'], data['password'])
        except sqlite3.IntegrityError:
            current_app.logger.warning("Registration with an e-mail that is already taken.",
                                       extra={'email_attempt': data['email']})
            flash('An account with that email already exists.', 'danger')
            return render_template('register.html', title='Register', form=request.form), 400

        user = user_model.get_user(user_id)
        login_user(user)
        current_app.logger.info("New user registered.", extra={'user_id': user_id, 'user_email': user['email']})
        flash('You are now logged in!', 'success')
        return redirect(url_for('stores_bp.index'))

    return render_template('register.html', title='Register', form={})


@auth_bp.route('/logout')
def logout():
    """Clears the session and returns to the home page."""
    user_id = session.get('user_id')
    logout_user()
    current_app.logger.info("User logged out.", extra={'user_id': user_id})
    flash('You are now logged out! 👋', 'success')
    return redirect(url_for('stores_bp.index'))


@auth_bp.route('/account/forgot', methods=['POST'])
def forgot():
    """
    Starts a password reset: stores a one-hour token on the account and
    e-mails a link containing it.
    """
    email = request.form.get('email', '')
    user = user_model.get_user_by_email(email)
    if user is None:
        flash('No account with that email exists.', 'danger')
        return redirect(url_for('auth_bp.login'))

    token = secrets.token_hex(20)
    expires_at = datetime.now(timezone.utc) + current_app.config['PASSWORD_RESET_EXPIRES']
    user_model.set_reset_token(user['id'], token, expires_at)

    reset_url = url_for('auth_bp.reset', token=token, _external=True)
    send_password_reset(user, reset_url)
    current_app.logger.info("Password reset requested.", extra={'user_id': user['id']})

    flash('You have been emailed a password reset link.', 'success')
    return redirect(url_for('auth_bp.login'))


@auth_bp.route('/account/reset/<token>', methods=['GET', 'POST'])
def reset(token):
    """
    GET: Shows the new-password form when the token is valid.
    POST: Checks both passwords match, sets the password and logs the user in.
    """
    user = user_model.get_user_by_reset_token(token)
    if user is None:
        flash('Password reset is invalid or has expired', 'danger')
        return redirect(url_for('auth_bp.login'))

    if request.method == 'POST':
        if not passwords_match(request.form):
            flash('Passwords do not match!', 'danger')
            return redirect(url_for('auth_bp.reset', token=token))

        updated_user = user_model.reset_password(user['id'], request.form['password'])
        login_user(updated_user)
        current_app.logger.info("Password reset completed.", extra={'user_id': user['id']})
        flash('💃 Nice! Your password has been reset! You are now logged in!', 'success')
        return redirect(url_for('stores_bp.index'))

    return render_template('reset.html', title='Reset your Password', token=token)
