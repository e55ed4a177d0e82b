# model.py
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Role(str, enum.Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class DefectType(str, enum.Enum):
    normal = "normal"
    urgent = "urgent"
    hazardous = "hazardous"
    recyclable = "recyclable"


class DefectStatus(str, enum.Enum):
    pending = "pending"
    verified = "verified"
    in_progress = "in_progress"
    resolved = "resolved"
    rejected = "rejected"


def _enum_column_type(enum_cls):
    # Stored as the plain string value, checked on the way in
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
        length=20,
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # always lowercase
    phone = Column(String, nullable=False)
    location = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(_enum_column_type(Role), default=Role.user, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationship
    defects = relationship("Defect", back_populates="owner", foreign_keys="Defect.owner_id")

    @property
    def name(self):
        return f"{self.first_name} {self.last_name}".strip()


class Defect(Base):
    __tablename__ = "defects"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(_enum_column_type(DefectType), default=DefectType.normal, nullable=False)
    status = Column(_enum_column_type(DefectStatus), default=DefectStatus.pending, nullable=False)
    location_text = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)  # relative paths, upload order
    upvotes = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="defects", foreign_keys=[owner_id])
    admin_comments = relationship(
        "AdminComment",
        back_populates="defect",
        cascade="all, delete-orphan",
        order_by="AdminComment.id",
    )
    notifications = relationship(
        "Notification",
        back_populates="defect",
        cascade="all, delete-orphan",
        order_by="Notification.id",
    )

    @property
    def location(self):
        return {
            "text": self.location_text,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    @property
    def unread_count(self):
        return sum(1 for n in self.notifications if not n.read)


class AdminComment(Base):
    __tablename__ = "admin_comments"

    id = Column(Integer, primary_key=True, index=True)
    defect_id = Column(Integer, ForeignKey("defects.id", ondelete="CASCADE"), nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    defect = relationship("Defect", back_populates="admin_comments")
    admin = relationship("User")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    defect_id = Column(Integer, ForeignKey("defects.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    defect = relationship("Defect", back_populates="notifications")
