from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, Time

from ..database import Base, utcnow


class Daylight(Base):
    __tablename__ = "daylight"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    sunrise_time = Column(Time, nullable=False)
    sunset_time = Column(Time, nullable=False)
    timezone = Column(String(50), nullable=False, default="Asia/Kolkata")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Daylight(date={self.date}, {self.sunrise_time}-{self.sunset_time})>"
