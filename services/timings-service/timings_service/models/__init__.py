from .calendar import CalendarEvent
from .daylight import Daylight
from .newsletter import NewsletterSubscriber
from .timings import Category, GoodTiming, TimeSlot
from .users import User, UserRole

__all__ = [
    "CalendarEvent",
    "Category",
    "Daylight",
    "GoodTiming",
    "NewsletterSubscriber",
    "TimeSlot",
    "User",
    "UserRole",
]
