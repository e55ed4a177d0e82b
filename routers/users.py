# routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from model import User
from schemas import UnreadSummary, UserOut
from services.authorization import Identity
from services.errors import Unauthenticated
from services.messaging import unread_summary
from util.security import get_current_identity

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=UserOut)
def read_users_me(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Get current user information"""
    db_user = db.query(User).filter(User.id == identity.user_id).first()
    if db_user is None:
        # Token outlived its account
        raise Unauthenticated("User no longer exists")
    return db_user

@router.get("/me/notifications", response_model=UnreadSummary)
def read_my_notifications(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    """Unread admin messages across the reports the caller can see (poll this)"""
    total, items = unread_summary(db, identity)
    return {"success": True, "unreadCount": total, "data": items}
