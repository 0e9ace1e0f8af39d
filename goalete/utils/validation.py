from datetime import date

from flask import request

from goalete.errors import ValidationError


def parse_body(schema):
    """Validate the JSON body against a pydantic schema."""
    data = request.get_json(silent=True)
    if data is None:
        if request.data:
            raise ValidationError('Invalid JSON in request body')
        data = {}
    return schema.model_validate(data)


def query_date(name, default=None, required=False):
    value = request.args.get(name)
    if not value:
        if required:
            raise ValidationError(details={name: ['This parameter is required']})
        return default
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(details={name: ['Use the YYYY-MM-DD format']})


def query_int(name, default, minimum=1, maximum=None):
    value = request.args.get(name)
    if value in (None, ''):
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValidationError(details={name: ['Must be an integer']})
    if number < minimum:
        raise ValidationError(details={name: [f'Must be at least {minimum}']})
    if maximum is not None and number > maximum:
        raise ValidationError(details={name: [f'Must be at most {maximum}']})
    return number
