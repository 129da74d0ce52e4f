"""
Input validation utility functions.

Each validator takes the submitted form (a `MultiDict`) and returns a tuple
`(data, errors)`: `data` holds the cleaned values and `errors` is a list of
user-facing messages, empty when the input is valid. Views flash every error
and send the user back to the form.
"""
import re

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def _parse_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_valid_email(email):
    return bool(email and EMAIL_RE.match(email.strip()))


def validate_registration(form):
    """
    Validates the registration form.

    Rules: a name is required (surrounding whitespace removed), the e-mail must
    look like an address and is lower-cased, the password and its confirmation
    are required and must be identical.
    """
    errors = []
    name = (form.get('name') or '').strip()
    email = (form.get('email') or '').strip().lower()
    password = form.get('password') or ''
    password_confirm = form.get('password-confirm') or ''

    if not name:
        errors.append('You must supply a name!')
    if not is_valid_email(email):
        errors.append('That Email is not valid!')
    if not password:
        errors.append('Password Cannot be Blank!')
    if not password_confirm:
        errors.append('Confirmed Password cannot be blank!')
    if password and password_confirm and password != password_confirm:
        errors.append('Oops! Your passwords do not match')

    return {'name': name, 'email': email, 'password': password}, errors


def validate_account(form):
    """Validates the account form (name and e-mail)."""
    errors = []
    name = (form.get('name') or '').strip()
    email = (form.get('email') or '').strip().lower()
    if not name:
        errors.append('You must supply a name!')
    if not is_valid_email(email):
        errors.append('That Email is not valid!')
    return {'name': name, 'email': email}, errors


def passwords_match(form):
    """True when 'password' is non-empty and equals 'password-confirm'."""
    password = form.get('password') or ''
    return bool(password) and password == (form.get('password-confirm') or '')


def validate_store_form(form, available_tags):
    """
    Validates the add/edit store form.

    Longitude must lie in [-180, 180] and latitude in [-90, 90]. Tags outside
    `available_tags` are silently dropped.
    """
    errors = []
    name = (form.get('name') or '').strip()
    description = (form.get('description') or '').strip()
    address = (form.get('address') or '').strip()
    lng = _parse_float(form.get('lng'))
    lat = _parse_float(form.get('lat'))
    tags = [tag for tag in dict.fromkeys(form.getlist('tags')) if tag in available_tags]

    if not name:
        errors.append('Please enter a store name!')
    if not address:
        errors.append('You must supply an address!')
    if lng is None or lat is None:
        errors.append('You must supply coordinates!')
    elif not (-180 <= lng <= 180 and -90 <= lat <= 90):
        errors.append('Those coordinates are not a valid location!')

    data = {
        'name': name,
        'description': description,
        'address': address,
        'lng': lng,
        'lat': lat,
        'tags': tags,
    }
    return data, errors


def validate_review_form(form):
    """Validates a review: text is required and rating is a whole number from 1 to 5."""
    errors = []
    text = (form.get('text') or '').strip()
    try:
        rating = int(form.get('rating', ''))
    except (TypeError, ValueError):
        rating = None

    if not text:
        errors.append('Your review must have text!')
    if rating is None or not 1 <= rating <= 5:
        errors.append('Please pick a rating between 1 and 5!')

    return {'text': text, 'rating': rating}, errors
