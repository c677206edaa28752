from sqlalchemy import Boolean, Column, DateTime, Integer, String, text

from ..database import Base, utcnow


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    subscribed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)
