"""
User persistence helpers.

Users sign in with their e-mail address. Passwords are stored as Werkzeug
hashes; the plain password never reaches the database. A user's hearted stores
live in the `hearts` table and behave like a set: a store is either hearted or
not, never twice.
"""
from datetime import datetime, timezone

from werkzeug.security import generate_password_hash, check_password_hash

from app.db import db_manager

_USER_COLUMNS = 'id, email, name, password, reset_password_token, reset_password_expires, created_at'


def normalize_email(email):
    return (email or '').strip().lower()


def create_user(email, name, password):
    """
    Creates a user and returns its id.

    Raises:
        sqlite3.IntegrityError: If the e-mail address is already registered.
    """
    return db_manager.insert(
        'INSERT INTO users (email, name, password, created_at) VALUES (?, ?, ?, ?)',
        (normalize_email(email), name.strip(), generate_password_hash(password),
         datetime.now(timezone.utc).isoformat())
    )


def get_user(user_id):
    row = db_manager.fetchone(f'SELECT {_USER_COLUMNS} FROM users WHERE id = ?', (user_id,))
    return dict(row) if row else None


def get_user_by_email(email):
    row = db_manager.fetchone(f'SELECT {_USER_COLUMNS} FROM users WHERE email = ?', (normalize_email(email),))
    return dict(row) if row else None


def authenticate(email, password):
    """Returns the user when the e-mail/password pair is valid, otherwise None."""
    user = get_user_by_email(email)
    if user and password and check_password_hash(user['password'], password):
        return user
    return None


def update_account(user_id, name, email):
    """
    Updates a user's display name and e-mail address.

    Raises:
        sqlite3.IntegrityError: If the new e-mail belongs to another account.
    """
    db_manager.update(
        'UPDATE users SET name = ?, email = ? WHERE id = ?',
        (name.strip(), normalize_email(email), user_id)
    )
    return get_user(user_id)


def set_reset_token(user_id, token, expires_at):
    """Stores a password reset token and its expiry (an aware datetime)."""
    db_manager.update(
        'UPDATE users SET reset_password_token = ?, reset_password_expires = ? WHERE id = ?',
        (token, expires_at.isoformat(), user_id)
    )


def get_user_by_reset_token(token, now=None):
    """
    Returns the user owning a still-valid reset token, or None when the token is
    unknown or has expired.
    """
    if not token:
        return None
    now = now or datetime.now(timezone.utc)
    user = db_manager.fetchone(
        f'SELECT {_USER_COLUMNS} FROM users WHERE reset_password_token = ?', (token,)
    )
    if user is None or not user['reset_password_expires']:
        return None
    if datetime.fromisoformat(user['reset_password_expires']) <= now:
        return None
    return dict(user)


def reset_password(user_id, password):
    """Sets a new password and invalidates any outstanding reset token."""
    db_manager.update(
        '''UPDATE users
           SET password = ?, reset_password_token = NULL, reset_password_expires = NULL
           WHERE id = ?''',
        (generate_password_hash(password), user_id)
    )
    return get_user(user_id)


def get_heart_ids(user_id):
    """Ids of the stores `user_id` has hearted, oldest heart first."""
    rows = db_manager.fetchall(
        'SELECT store_id FROM hearts WHERE user_id = ? ORDER BY created_at, store_id', (user_id,)
    )
    return [row['store_id'] for row in rows]


def toggle_heart(user_id, store_id):
    """
    Hearts `store_id` for the user, or removes the heart if it is already there.

    Returns:
        bool: True if the store is hearted after the call, False if it was removed.
    """
    removed = db_manager.delete('DELETE FROM hearts WHERE user_id = ? AND store_id = ?', (user_id, store_id))
    if removed:
        return False
    db_manager.insert(
        'INSERT OR IGNORE INTO hearts (user_id, store_id, created_at) VALUES (?, ?, ?)',
        (user_id, store_id, datetime.now(timezone.utc).isoformat())
    )
    return True


def user_to_json(user, hearts=None):
    """Public JSON representation of a user (never includes the password hash)."""
    return {
        'id': user['id'],
        'email': user['email'],
        'name': user['name'],
        'hearts': hearts if hearts is not None else get_heart_ids(user['id']),
    }
