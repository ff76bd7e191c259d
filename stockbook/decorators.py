# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


OWNER_HEADER = "X-Owner-Id"


def require_owner(f):
    """
    Establish tenant context from the upstream auth layer.

    MULTI-TENANT: Sets g.owner_id from the X-Owner-Id header. Every service
    call made by the route is scoped to it.

    Returns 401 when the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        owner_id = (request.headers.get(OWNER_HEADER) or "").strip()
        if not owner_id:
            return jsonify({"success": False, "error": "Authentication required", "code": "UNAUTHORIZED"}), 401
        if len(owner_id) > 64:
            return jsonify({"success": False, "error": "Invalid owner id", "code": "UNAUTHORIZED"}), 401

        g.owner_id = owner_id
        return f(*args, **kwargs)

    return decorated_function
