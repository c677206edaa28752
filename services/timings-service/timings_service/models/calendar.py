from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time, text
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    is_all_day = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    color = Column(String(20), nullable=False, default="blue")
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", lazy="selectin")
    creator = relationship("User", lazy="selectin")

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category is not None else None

    @property
    def category_color(self) -> str | None:
        return self.category.color_token if self.category is not None else None

    @property
    def created_by_name(self) -> str | None:
        return self.creator.name if self.creator is not None else None
