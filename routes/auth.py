import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core.database import get_session
from core.exceptions import Conflict, Unauthorized
from core.security import create_token_for_user, get_current_user, hash_password, verify_password
from core.timeutils import utcnow
from models.models import User
from schemas.user_schema import TokenResponse, UserCreate, UserLogin, UserRead

router = APIRouter(tags=["Authentication"])
logger = logging.getLogger(__name__)


def _find_by_email(session: Session, email: str):
    return session.exec(select(User).where(User.email == email.lower())).first()


# ==========================================================
# ✅ Register
# ==========================================================
@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, session: Session = Depends(get_session)):
    email = user_data.email.lower()
    if _find_by_email(session, email):
        raise Conflict("An account with this email already exists. Please log in instead.")

    new_user = User(
        name=user_data.name.strip(),
        email=email,
        password_hash=hash_password(user_data.password),
        created_at=utcnow(),
    )
    session.add(new_user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        session.rollback()
        raise Conflict("An account with this email already exists. Please log in instead.")
    session.refresh(new_user)

    logger.info("📝 Registered user %s", new_user.id)
    return TokenResponse(
        access_token=create_token_for_user(new_user),
        user=UserRead.model_validate(new_user),
    )


# ==========================================================
# ✅ Login
# ==========================================================
@router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, session: Session = Depends(get_session)):
    db_user = _find_by_email(session, credentials.email)
    if not db_user or not verify_password(credentials.password, db_user.password_hash):
        raise Unauthorized("Invalid email or password.")

    return TokenResponse(
        access_token=create_token_for_user(db_user),
        user=UserRead.model_validate(db_user),
    )


# ==========================================================
# ✅ Current user
# ==========================================================
@router.get("/me", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
