# schemas.py
# Defines request/response Pydantic models for validation
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from model import DefectStatus, DefectType, Role

# -------------------- USER --------------------
class UserCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=30)
    location: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)

class UserLogin(BaseModel):
    email: str
    password: str

class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: Role

    class Config:
        from_attributes = True

class UserOut(UserSummary):
    first_name: str
    last_name: str
    phone: str
    location: str
    created_at: Optional[datetime] = None

class AuthResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserSummary

# -------------------- DEFECT --------------------
class Location(BaseModel):
    text: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

class AdminCommentOut(BaseModel):
    id: int
    message: str
    admin_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class NotificationOut(BaseModel):
    id: int
    text: str
    read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DefectOut(BaseModel):
    id: int
    title: str
    description: str
    type: DefectType
    status: DefectStatus
    location: Location
    image_urls: List[str] = []
    upvotes: int = 0
    owner_id: int
    owner: Optional[UserSummary] = None
    admin_comments: List[AdminCommentOut] = []
    notifications: List[NotificationOut] = []
    unread_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DefectUpdate(BaseModel):
    """Partial update; only the fields sent are applied"""
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[DefectType] = None
    location: Optional[Location] = None

class StatusUpdate(BaseModel):
    # Checked against DefectStatus by the service so bad values get the service's message
    status: str

class CommentCreate(BaseModel):
    message: str

# -------------------- RESPONSES --------------------
class DefectResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: DefectOut

class DefectPage(BaseModel):
    success: bool = True
    data: List[DefectOut]
    page: int
    limit: int
    totalPages: int
    totalItems: int

class SuggestionsResponse(BaseModel):
    success: bool = True
    suggestions: List[str]

class UnreadDefect(BaseModel):
    defect_id: int
    title: str
    unread: int

class UnreadSummary(BaseModel):
    success: bool = True
    unreadCount: int
    data: List[UnreadDefect]

class StatusResponse(BaseModel):
    message: str
    success: bool = True
