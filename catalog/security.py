from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header

from catalog.config import settings
from catalog.exceptions import AuthenticationError, ProductValidationError

BEARER_PREFIX = "Bearer "
JSON_CONTENT_TYPE = "application/json"


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        raise AuthenticationError(f"Invalid token: {e}")


def get_current_user(authorization: Annotated[Optional[str], Header()] = None) -> dict:
    """
    Validate the bearer token and return the caller's claims.

    The user id is taken from the 'sub' claim.
    """
    if not authorization:
        raise AuthenticationError("Authorization header is required")
    if not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Invalid authorization format")

    token = authorization[len(BEARER_PREFIX):].strip()
    claims = decode_token(token)

    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")

    return {"id": user_id, "claims": claims, "token": token}


def require_json_content_type(content_type: Annotated[Optional[str], Header()] = None) -> None:
    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type != JSON_CONTENT_TYPE:
        raise ProductValidationError(f"Content-Type must be {JSON_CONTENT_TYPE}")


T_CurrentUser = Annotated[dict, Depends(get_current_user)]
