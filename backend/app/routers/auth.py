from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DBSession

from backend.app.database import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.auth import AuthRequest, AuthResponse, ProfileResponse
from backend.app.services import registry
from backend.app.utils.security import hash_password, verify_password, create_access_token

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/register", response_model=AuthResponse)
def register(body: AuthRequest, db: DBSession = Depends(get_db)):
    email = body.email.lower().strip()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        full_name=(body.full_name or "").strip() or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return AuthResponse(token=create_access_token(user.id, user.email))


@router.post("/login", response_model=AuthResponse)
def login(body: AuthRequest, db: DBSession = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower().strip()).first()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return AuthResponse(token=create_access_token(user.id, user.email))


@router.get("/me", response_model=ProfileResponse)
def me(current_user: User = Depends(get_current_user)):
    return ProfileResponse(id=current_user.id, email=current_user.email, full_name=current_user.full_name)


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """Drop the server-side dashboard; JWTs themselves stay valid until they expire."""
    return {"ok": registry.drop_controller(current_user.id)}
