"""User (profile) API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms.database import commit_or_fail, get_db
from lms.dependencies import get_current_user
from lms.errors import Conflict, NotFound
from lms.models.user import User
from lms.schemas.user import UserCreate, UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register a profile for an identity issued by the session provider."""
    user = User(**payload.model_dump())
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning("Rejected duplicate profile email %s", payload.email)
        raise Conflict("Email already registered")
    commit_or_fail(db, "creating user")
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.name)
    return user


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    return user


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """Fetch a single user by ID."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user
