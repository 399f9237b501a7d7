import logging
from typing import Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt

from bookmarket import config
from bookmarket.errors import AuthenticationError, AuthorizationError, ValidationError
from bookmarket.models import User
from bookmarket.stores import UserStore, get_user_store

logger = logging.getLogger(__name__)

ROLES = ("customer", "librarian", "admin")


def verify_identity_token(token: str) -> str:
    """Ask the identity provider who holds this token; returns the verified email."""
    try:
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError(f"Unauthorized access: {exc}")

    email = claims.get("email")
    if not email:
        raise AuthenticationError("Unauthorized access: token carries no email")
    return email


def verify_token(request: Request, authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise AuthenticationError("Unauthorized access")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Unauthorized access: malformed authorization header")
    if scheme.lower() != "bearer":
        raise AuthenticationError("Unauthorized access: bearer token required")

    email = verify_identity_token(token)
    request.state.email = email
    return email


def require_admin(email: str = Depends(verify_token), users: UserStore = Depends(get_user_store)) -> User:
    user = users.get_by_email(email)
    if user is None or user.role != "admin":
        logger.warning("Denied admin operation to %s", email)
        raise AuthorizationError("Forbidden access")
    return user


def require_self_role_guard(actor_email: str, target_email: str):
    if actor_email == target_email:
        raise ValidationError("You cannot change your own role")


def validate_role(role: str):
    if role not in ROLES:
        raise ValidationError(f"Invalid role '{role}', expected one of: {', '.join(ROLES)}")
