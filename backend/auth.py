import uuid
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request, HTTPException, status
from jose import jwt, JWTError

from config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_HOURS

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"


def create_token(data: dict) -> str:
    """Sign ``data`` (user_id, role) with an expiry and a unique jti."""
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRY_HOURS)
    claims["jti"] = str(uuid.uuid4())
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> dict:
    """
    FastAPI dependency — reads the Bearer token and returns
    ``{"user_id", "role"}``. Budget admins carry role "admin"; everyone
    else (founders submitting expenses) gets the default role.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer" or not token:
        raise _unauthorized("Missing or invalid Authorization header")

    payload = verify_token(token)
    if payload is None:
        raise _unauthorized("Invalid or expired token")
    if payload.get("user_id") is None:
        raise _unauthorized("Token payload missing required claims")

    return {"user_id": payload["user_id"], "role": payload.get("role", DEFAULT_ROLE)}


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user["role"] != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    return user
