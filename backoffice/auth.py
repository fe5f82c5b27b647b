# backoffice/auth.py
# Current-user lookup from the "Authorization: Bearer <session token>" header.

from __future__ import annotations

import logging
import uuid
from typing import Optional

import jwt
from fastapi import Header, HTTPException

from backoffice.config import AUTH_JWT_SECRET

logger = logging.getLogger(__name__)


def user_id_from_token(token: str, secret: str = AUTH_JWT_SECRET) -> uuid.UUID:
    """Decode an HS256 session token and return its subject as a UUID."""
    claims = jwt.decode(token, secret, algorithms=["HS256"], options={"verify_aud": False})
    return uuid.UUID(str(claims["sub"]))


def current_user_id(authorization: Optional[str] = Header(None)) -> uuid.UUID:
    if not authorization:
        raise HTTPException(status_code=401, detail="No authorization header")

    token = authorization.replace("Bearer ", "", 1).strip()
    try:
        return user_id_from_token(token)
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.info("Rejected session token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid user token")
