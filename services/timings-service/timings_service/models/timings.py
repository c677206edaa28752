from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, Time, text
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    color_token = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class GoodTiming(Base):
    __tablename__ = "good_timings"

    id = Column(Integer, primary_key=True, index=True)
    day = Column(String(20), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User", lazy="selectin")
    time_slots = relationship(
        "TimeSlot",
        back_populates="good_timing",
        cascade="all, delete-orphan",
        order_by="TimeSlot.start_time",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_good_timings_range", "start_date", "end_date"),)

    @property
    def created_by_name(self) -> str | None:
        return self.creator.name if self.creator is not None else None

    def __repr__(self):
        return f"<GoodTiming(id={self.id}, day='{self.day}', {self.start_date}..{self.end_date})>"


class TimeSlot(Base):
    """A start/end window inside a good timing, tagged with a category."""

    __tablename__ = "time_slot_children"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("good_timings.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    good_timing = relationship("GoodTiming", back_populates="time_slots")
    category = relationship("Category", lazy="selectin")

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category is not None else None

    @property
    def category_color(self) -> str | None:
        return self.category.color_token if self.category is not None else None
