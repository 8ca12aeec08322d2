# salonbook/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from salonbook.auth import issue_token, verify_password
from salonbook.db import get_session
from salonbook.models import User
from salonbook.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # The OAuth2 form calls the email "username"
    account = session.exec(
        select(User).where(User.email == form.username.strip().lower())
    ).first()

    if account is None or not verify_password(form.password, account.password_hash):
        logger.info("Failed login for %s", form.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("%s %s signed in", account.role, account.email)
    return {"access_token": issue_token(account.email, account.role), "token_type": "bearer"}
