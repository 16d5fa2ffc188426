from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from app.core.auth import verify_token
from app.db.session import get_db
from app.models.user import User


def _extract_token(request: Request) -> Optional[str]:
    # Cookie first (web client), then Authorization header (browser extension)
    access_token = request.cookies.get("access_token")
    if not access_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            access_token = auth_header[7:]
    return access_token


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user from JWT cookie or bearer token"""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    access_token = _extract_token(request)
    if not access_token:
        raise credentials_exception

    payload = verify_token(access_token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub") or payload.get("userId")
    if user_id is None:
        raise credentials_exception

    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_uuid).first()
    if user is None:
        raise credentials_exception

    return user


def get_summary_service(request: Request):
    return request.app.state.summary_service


def get_linkedin_service(request: Request):
    return request.app.state.linkedin_service


def get_website_service(request: Request):
    return request.app.state.website_service


def get_user_service(request: Request):
    return request.app.state.user_service
