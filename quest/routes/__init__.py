# quest/routes/__init__.py
from flask import request


def json_object_body():
    """Request JSON as a dict; {} when there is no body, None when it is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None
