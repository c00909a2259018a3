# -*- coding: utf-8 -*-
from functools import wraps
from flask import jsonify
from flask_login import current_user

from .errors import error_payload

def roles_required(*roles):
    """
    Not logged in -> 401 JSON.
    Global role not in the list -> 403 JSON.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify(error_payload("Authentication required")), 401
            if current_user.role not in roles:
                return jsonify(error_payload("Insufficient permissions")), 403
            return f(*args, **kwargs)
        return wrapper
    return decorator
