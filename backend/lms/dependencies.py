"""FastAPI dependencies shared by the routers."""
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.errors import Unauthenticated
from lms.models.user import User

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/sign-in"


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the identity header set by the session provider.

    Args:
        x_user_id: Profile ID forwarded by the upstream session layer.
        db: Database session.

    Returns:
        The caller's User row.

    Raises:
        Unauthenticated: Header missing or naming an unknown profile.
    """
    if not x_user_id:
        raise Unauthenticated("Unauthorized", redirect_to=SIGN_IN_PATH)
    user = db.query(User).filter(User.user_id == x_user_id).first()
    if not user:
        logger.warning("Rejected request for unknown profile %s", x_user_id)
        raise Unauthenticated("Unauthorized", redirect_to=SIGN_IN_PATH)
    return user
