from __future__ import annotations

import logging
from functools import wraps

from flask import current_app, g, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import CurrentUser
from .tokens import decode_token

logger = logging.getLogger(__name__)


def token_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            logger.warning("Missing bearer token for %s", request.path)
            raise AuthenticationError("Authentication required")

        token = auth_header.split(" ", 1)[1].strip()
        if not token:
            raise AuthenticationError("Authentication token missing")

        g.current_user = decode_token(
            token,
            secret=current_app.config["JWT_SECRET"],
            algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
        )
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    """Allow only the given roles. Must be stacked under ``token_required``."""

    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                raise AuthenticationError("User not authenticated")
            if user.role.value not in allowed:
                logger.warning("User %s (%s) denied on %s", user.id, user.role.value, request.path)
                raise AuthorizationError("Insufficient permissions")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user() -> CurrentUser:
    return g.current_user


def current_user_id() -> str:
    return g.current_user.id
