# salonbook/auth.py

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from salonbook import config
from salonbook.db import get_session
from salonbook.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def issue_token(email: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Signed bearer token naming the account and the role it signed in with."""
    minutes = expires_minutes or config.ACCESS_TOKEN_EXPIRE_MINUTES
    claims = {
        "sub": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, config.SECRET_KEY, algorithm=config.ALGORITHM)


def read_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid token")
    if not claims.get("sub") or not claims.get("role"):
        raise _unauthorized("Invalid token")
    return claims


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    claims = read_token(token)

    user = session.exec(
        select(User).where(User.email == claims["sub"])
    ).first()
    if user is None:
        raise _unauthorized("User not found")

    # A role change on the account invalidates tokens issued before it
    if user.role != claims["role"]:
        raise _unauthorized("Token role is out of date, please sign in again")

    return {"id": user.id, "email": user.email, "role": user.role}
