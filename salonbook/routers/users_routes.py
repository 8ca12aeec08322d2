# salonbook/routers/users_routes.py

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salonbook.db import get_session
from salonbook.models import User
from salonbook.schemas import UserCreate, UserPublic, UserRole
from salonbook.auth import get_current_user, hash_password

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return {
        "id": current_user["id"],
        "email": current_user["email"],
        "role": current_user["role"],
    }


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # 1) Emails are stored lowercased, as login looks them up
    email = user.email.strip().lower()
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Only the first admin can self-register; later admins are created by an admin
    if user.role == UserRole.admin:
        admin_exists = session.exec(
            select(User).where(User.role == UserRole.admin.value)
        ).first()
        if admin_exists is not None:
            raise HTTPException(status_code=403, detail="Admin accounts must be created by an admin")

    # 3) Create user in DB
    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        role=user.role.value,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)  # fills db_user.id

    # 4) Return public user
    return {
        "id": db_user.id,
        "email": db_user.email,
        "role": db_user.role,
    }
