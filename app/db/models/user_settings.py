from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    notifications_email = Column(Boolean, nullable=False, default=True)
    notifications_push = Column(Boolean, nullable=False, default=True)
    language = Column(String, nullable=False, default="en")
    timezone = Column(String, nullable=False, default="UTC")
    profile_visibility = Column(String, nullable=False, default="public")
    marketing_opt_in = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="settings")
