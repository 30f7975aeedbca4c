"""Stores and their subscriptions."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base

DEFAULT_TEMPLATE_NAME = "classic"


class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    # One store per user at any time
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    name = Column(String(255), unique=True, nullable=False, index=True)
    url = Column(String(512), unique=True, nullable=True)
    store_type = Column(String(100), nullable=False)
    address = Column(String(255), nullable=True)
    template_name = Column(String(50), nullable=False, default=DEFAULT_TEMPLATE_NAME)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="store")
    subscription = relationship(
        "Subscription",
        back_populates="store",
        uselist=False,
        cascade="all, delete-orphan",
    )
