"""
Flask session helper functions.

Helpers for signing users in and out and for building the user context that
is attached to log records.
"""
from flask import session


def login_user(user):
    """
    Starts a session for `user`.

    The session is cleared first so nothing from an anonymous visit (or a
    previous account) carries over.
    """
    session.clear()
    session['user_id'] = user['id']
    session['user_email'] = user['email']
    session['user_name'] = user['name']


def logout_user():
    session.clear()


def get_current_session_info():
    """
    Retrieves the signed-in user's id and e-mail from the session together with
    a dict ready to be passed as `extra=` to logging calls.

    Example Usage:
        info = get_current_session_info()
        current_app.logger.info("Store created.", extra=info['base_log_extra'])
    """
    user_id = session.get('user_id')
    user_email = session.get('user_email')
    return {
        'user_id': user_id,
        'user_email': user_email,
        'base_log_extra': {'user_id': user_id, 'user_email': user_email},
    }
