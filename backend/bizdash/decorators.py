# Overview: Request authorization decorator for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import token_service
from .services.token_service import TokenMissing, TokenError


def require_auth(f):
    """
    Require a valid bearer token and establish the caller's identity.

    Sets the following Flask g attributes:
    - g.current_user_id: id of the authenticated user (owner of all records touched)
    - g.current_user_email: email embedded in the token

    Returns:
    - 401 when the Authorization header or token is missing
    - 403 when the token is malformed, wrongly signed, or expired

    Nothing is kept between requests; every call re-verifies the token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = token_service.extract_bearer(request.headers.get("Authorization"))

        try:
            identity = token_service.verify(token)
        except TokenMissing as e:
            return jsonify({"error": str(e)}), 401
        except TokenError as e:
            return jsonify({"error": str(e)}), 403

        g.current_user_id = identity.user_id
        g.current_user_email = identity.email

        return f(*args, **kwargs)

    return decorated_function
