# routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from database import get_db
from schemas import AuthResponse, UserCreate, UserLogin, UserSummary
from services import credentials

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and sign them in"""
    profile = user.model_dump(exclude={"password"})
    db_user = credentials.register(db, profile, user.password)

    return {
        "success": True,
        "token": credentials.issue_token(db_user),
        "user": UserSummary.model_validate(db_user),
    }

@router.post("/login", response_model=AuthResponse)
def login(user: UserLogin, db: Session = Depends(get_db)):
    """Login user and return access token"""
    token, db_user = credentials.login(db, user.email, user.password)

    return {
        "success": True,
        "token": token,
        "user": UserSummary.model_validate(db_user),
    }
