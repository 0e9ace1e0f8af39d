# goalete/errors.py
"""
API error taxonomy and the JSON error responses registered on the app.

Every failure leaves the API as::

    {"success": false, "message": "...", "details": {...}, "timestamp": "..."}
"""
import logging
from datetime import datetime, timezone

import pydantic
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base error carrying an HTTP status and optional structured details."""

    status_code = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        body = {
            'success': False,
            'message': self.message,
            'timestamp': _timestamp(),
        }
        if self.details is not None:
            body['details'] = self.details
        return body


class Unauthorized(ApiError):
    status_code = 401
    default_message = 'Unauthorized'


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Invalid input'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Resource not found'


class Conflict(ApiError):
    status_code = 409
    default_message = 'Conflict'


class UpstreamFailure(ApiError):
    status_code = 502
    default_message = 'External service error'


class InternalError(ApiError):
    status_code = 500
    default_message = 'Internal server error'


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


def field_errors(exc):
    """Flatten a pydantic ValidationError into ``{field: [messages]}``."""
    details = {}
    for error in exc.errors():
        field = '.'.join(str(part) for part in error.get('loc', ())) or '__root__'
        details.setdefault(field, []).append(error.get('msg', 'Invalid value'))
    return details


def success_response(data=None, message=None, status_code=200):
    body = {'success': True, 'timestamp': _timestamp()}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return jsonify(body), status_code


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(pydantic.ValidationError)
    def handle_validation_error(error):
        return handle_api_error(ValidationError(details=field_errors(error)))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify(ApiError(error.description, status_code=error.code).to_dict()), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled exception: {error}")
        return handle_api_error(InternalError())
