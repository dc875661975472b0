from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, Numeric
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow

POST_TYPES = ("reel", "post")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    advertiser_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    old_price = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    with_reservation = Column(Boolean, nullable=False, default=False)
    reservation_time = Column(DateTime(timezone=True), nullable=True)
    reservation_limit = Column(Integer, nullable=True)
    social_link = Column(String, nullable=True)
    media_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    advertiser = relationship("User", back_populates="posts")
    category = relationship("Category", back_populates="posts")
    reservations = relationship("Reservation", back_populates="post", cascade="all, delete-orphan")
    saves = relationship("SavedPost", back_populates="post", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")
