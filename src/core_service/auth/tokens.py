from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .model import CurrentUser


def issue_token(
    *,
    user_id: str,
    role: Role,
    secret: str,
    email: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=8),
    algorithm: str = "HS256",
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "email": email,
        "role": role.value,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, *, secret: str, algorithm: str = "HS256") -> CurrentUser:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Authentication token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid authentication token")

    if "id" not in payload:
        raise AuthenticationError("Invalid authentication token")

    try:
        role = Role(str(payload.get("role", Role.EMPLOYEE.value)).lower())
    except ValueError:
        raise ValidationError("Unknown role in token")

    return CurrentUser(id=str(payload["id"]), email=payload.get("email"), role=role)
