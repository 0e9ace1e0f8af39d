from functools import wraps
from flask import current_app, request

from goalete.errors import Unauthorized


def bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        checker = current_app.extensions['credential_checker']
        if not checker.check(bearer_token()):
            raise Unauthorized()

        return f(*args, **kwargs)
    return decorated_function


def cron_secret_required(f):
    """Only enforced when CRON_SECRET is configured."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get('CRON_SECRET')
        if secret and bearer_token() != secret:
            raise Unauthorized()

        return f(*args, **kwargs)
    return decorated_function
