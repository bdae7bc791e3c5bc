import os
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select
from google.oauth2 import id_token
from google.auth.transport import requests as grequests

from app.db.db import get_session
from app.models.user import User
from app.utils.auth_helper import create_access_token

router = APIRouter()
logger = logging.getLogger(__name__)


class GoogleIDToken(BaseModel):
    id_token: str


class TokenResponse(BaseModel):
    access_token: str
    user_id: str
    role: str


@router.post("/google", response_model=TokenResponse)
def google_auth(payload: GoogleIDToken, session: Session = Depends(get_session)):
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    if not client_id:
        logger.error("GOOGLE_CLIENT_ID is not set")
        raise HTTPException(status_code=500, detail="Server error")

    try:
        idinfo = id_token.verify_oauth2_token(payload.id_token, grequests.Request(), client_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid Google ID token")

    # idinfo now trusted and parsed by Google libs
    email = idinfo.get("email")
    if not email:
        raise HTTPException(status_code=401, detail="Google account has no email")

    db_user = session.exec(select(User).where(User.email == email)).first()
    if not db_user:
        db_user = User(
            public_id=uuid.uuid4().hex,
            name=idinfo.get("name") or email.split("@")[0],
            image=idinfo.get("picture"),
            email=email,
            role="user",
        )
        session.add(db_user)
        session.commit()
        session.refresh(db_user)

        logger.info("Registered user %s", db_user.public_id)

    return TokenResponse(
        access_token=create_access_token(db_user),
        user_id=db_user.public_id,
        role=db_user.role,
    )
