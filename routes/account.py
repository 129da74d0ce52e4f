"""
Account management routes.

Lets a signed-in user view and change the name and e-mail address on their
account. Password changes go through the reset flow in routes/auth.py.
"""
import sqlite3

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, g

from app.models import user as user_model
from utils.decorators import login_required
from utils.session_helpers import login_user
from utils.validation import validate_account

account_bp = Blueprint('account_bp', __name__)


@account_bp.route('/account', methods=['GET', 'POST'])
@login_required
def account():
    """
    GET: Displays the account form populated with the user's current data.
    POST: Updates name and e-mail.
    """
    if request.method == 'POST':
        data, errors = validate_account(request.form)
        if errors:
            for message in errors:
                flash(message, 'danger')
            return redirect(url_for('account_bp.account'))

        try:
            updated_user = user_model.update_account(g.user['id'], data['name'], data['email'])
        except sqlite3.IntegrityError:
            current_app.logger.warning("Account update collided with another account's e-mail.",
                                       extra={'user_id': g.user['id']})
            flash('An account with that email already exists.', 'danger')
            return redirect(url_for('account_bp.account'))

        # Refresh the session so the new e-mail shows up in logs and the header.
        login_user(updated_user)
        current_app.logger.info("User updated their account.", extra={'user_id': g.user['id']})
        flash('Updated the profile!', 'success')
        return redirect(url_for('account_bp.account'))

    return render_template('account.html', title='Edit Your Account')
