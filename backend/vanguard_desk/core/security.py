"""Caller resolution from bearer tokens.

Tokens are issued by the account service; here we only verify the signature and
load the account they point at.
"""

import logging

import jwt
from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from vanguard_desk.core.config import settings
from vanguard_desk.core.database import get_session
from vanguard_desk.models.user import User

logger = logging.getLogger(__name__)


def _extract_token(authorization: str | None, x_auth_token: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return x_auth_token or None


def _user_id_from_claims(claims: dict) -> int | None:
    user = claims.get("user")
    if isinstance(user, dict) and user.get("id") is not None:
        return int(user["id"])
    for key in ("user_id", "id", "sub"):
        if claims.get(key) is not None:
            return int(claims[key])
    return None


def create_access_token(user_id: int) -> str:
    """Sign a token for ``user_id``. Used by tests and local tooling."""
    return jwt.encode({"user": {"id": user_id}}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def resolve_user(token: str, session: Session) -> User:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        user_id = _user_id_from_claims(claims)
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(status_code=401, detail="Token is not valid")

    user = session.get(User, user_id) if user_id is not None else None
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Token is not valid")
    return user


async def get_current_user(
    authorization: str | None = Header(default=None),
    x_auth_token: str | None = Header(default=None),
    session: Session = Depends(get_session),
) -> User:
    token = _extract_token(authorization, x_auth_token)
    if not token:
        raise HTTPException(status_code=401, detail="No token, authorization denied")
    return resolve_user(token, session)


async def get_optional_user(
    authorization: str | None = Header(default=None),
    x_auth_token: str | None = Header(default=None),
    session: Session = Depends(get_session),
) -> User | None:
    """Like get_current_user, but a missing or bad token means a guest."""
    token = _extract_token(authorization, x_auth_token)
    if not token:
        return None
    try:
        return resolve_user(token, session)
    except HTTPException:
        return None


async def require_staff(user: User = Depends(get_current_user)) -> User:
    if not user.is_staff:
        raise HTTPException(status_code=403, detail="Access denied. Editor or Admin role required.")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied. Admin role required.")
    return user
