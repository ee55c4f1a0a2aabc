from flask import request

from models.errors import InvalidOperation


def json_body() -> dict:
    """The request's JSON object; an absent or unparsable body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidOperation("Request body must be a JSON object", details={"type": type(data).__name__})
    return data
