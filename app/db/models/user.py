from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow

ROLE_USER = "user"
ROLE_ADVERTISER = "advertiser"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_USER)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    posts = relationship("Post", back_populates="advertiser", cascade="all, delete-orphan")
    saved_posts = relationship("SavedPost", back_populates="client", cascade="all, delete-orphan")
    profile = relationship("UserProfile", back_populates="user", cascade="all, delete-orphan", uselist=False)
    settings = relationship("UserSettings", back_populates="user", cascade="all, delete-orphan", uselist=False)
