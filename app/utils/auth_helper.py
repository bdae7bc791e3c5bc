import os
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlmodel import Session, select

from app.db.db import get_session
from app.models.user import User
from app.utils.errors import Forbidden

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))  # 1 day


def _secret_key():
    return os.getenv("JWT_SECRET", "your_really_long_secret_key")


class Actor(BaseModel):
    """The authenticated identity handed to every workflow operation."""

    id: int
    public_id: str
    name: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            public_id=user.public_id,
            name=user.name,
            email=user.email,
            role=user.role,
        )


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)

    payload = {
        "sub": user.public_id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }

    return jwt.encode(payload, _secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, _secret_key(), algorithms=[ALGORITHM])


bearer_scheme_optional = HTTPBearer(auto_error=False)


def get_current_user_optional(token: HTTPAuthorizationCredentials = Depends(bearer_scheme_optional)):
    if not token:
        return None

    try:
        return decode_access_token(token.credentials)
    except JWTError:
        return None


bearer_scheme_required = HTTPBearer(auto_error=True)


def get_current_user_required(token: HTTPAuthorizationCredentials = Depends(bearer_scheme_required)):
    try:
        return decode_access_token(token.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def get_db_user(session: Session, current_user):
    user = session.exec(
        select(User).where(User.public_id == current_user["sub"])
    ).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user


def get_actor(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
) -> Actor:
    # role is read from the database so demotions apply to tokens already issued
    return Actor.from_user(get_db_user(session, current_user))


def get_actor_optional(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_optional),
) -> Optional[Actor]:
    if not current_user:
        return None

    user = session.exec(
        select(User).where(User.public_id == current_user["sub"])
    ).first()

    return Actor.from_user(user) if user else None


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    return actor
