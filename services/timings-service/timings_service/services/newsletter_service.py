import random
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import utcnow
from ..errors import ConflictError, NotFoundError, UpstreamError
from ..metrics import NEWSLETTER_SUBSCRIPTIONS_TOTAL
from ..models.newsletter import NewsletterSubscriber
from ..models.timings import GoodTiming
from ..schemas.common import hhmm
from ..throttle import Throttle
from . import daylight_service, good_timings_service
from .calendar_resolver import ResolvedSlot, resolve_day, sorted_slots
from .mail_service import DeliveryResult, Mailer, deliver, send_one

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

QUOTES = (
    "The best time to plant a tree was 20 years ago. The second best time is now.",
    "Time is what we want most, but what we use worst.",
    "Lost time is never found again.",
    "The key is in not spending time, but in investing it.",
    "Time you enjoy wasting is not wasted time.",
    "Yesterday is history, tomorrow is a mystery, today is a gift.",
    "The way we spend our time defines who we are.",
    "Better three hours too soon than a minute too late.",
    "Your time is limited, so don't waste it living someone else's life.",
    "Every morning we are born again. What we do today matters most.",
)

COLOR_HEX = {
    "blue": "#3b82f6",
    "green": "#10b981",
    "teal": "#14b8a6",
    "amber": "#f59e0b",
    "red": "#ef4444",
    "yellow": "#eab308",
    "orange": "#f97316",
    "purple": "#8b5cf6",
    "pink": "#ec4899",
}


@dataclass
class DigestDaylight:
    sunrise_time: str
    sunset_time: str
    timezone: str


@dataclass
class DailyDigest:
    subject: str
    html: str
    timings: list[ResolvedSlot]
    daylight: DigestDaylight | None
    quote: str
    day: date


@lru_cache()
def _template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_template(name: str, **context: Any) -> str:
    return _template_env().get_template(name).render(**context)


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_long_date(day: date) -> str:
    """``Saturday, October 18th``"""
    return f"{day.strftime('%A')}, {day.strftime('%B')} {ordinal(day.day)}"


def digest_subject(day: date) -> str:
    return f"Your Daily Good Timings - {format_long_date(day)}"


def _active_view(timing: GoodTiming) -> dict[str, Any]:
    # slots tagged with a deactivated category are left out of the email
    return {
        "id": timing.id,
        "day": timing.day,
        "start_date": timing.start_date,
        "end_date": timing.end_date,
        "time_slots": [s for s in timing.time_slots if s.category is None or s.category.is_active],
    }


async def build_daily_digest(
    db: AsyncSession,
    today: date,
    settings: Settings,
    rng: random.Random | None = None,
) -> DailyDigest:
    timings = await good_timings_service.list_timings_covering(db, today, today)
    slots = sorted_slots(resolve_day(today, [_active_view(t) for t in timings]))

    row = await daylight_service.get_by_date(db, today)
    daylight = (
        DigestDaylight(sunrise_time=hhmm(row.sunrise_time), sunset_time=hhmm(row.sunset_time), timezone=row.timezone)
        if row is not None
        else None
    )
    quote = (rng or random).choice(QUOTES)
    subject = digest_subject(today)
    html = render_template(
        "daily_digest.html",
        subject=subject,
        date_label=format_long_date(today),
        timings=slots,
        daylight=daylight,
        quote=quote,
        colors=COLOR_HEX,
        unsubscribe_url=f"{settings.FRONTEND_URL.rstrip('/')}/newsletter/unsubscribe",
        frontend_url=settings.FRONTEND_URL,
    )
    return DailyDigest(subject=subject, html=html, timings=slots, daylight=daylight, quote=quote, day=today)


async def get_subscriber_by_email(db: AsyncSession, email: str) -> NewsletterSubscriber | None:
    res = await db.execute(select(NewsletterSubscriber).where(NewsletterSubscriber.email == email.lower()))
    return res.scalar_one_or_none()


async def list_active_subscribers(db: AsyncSession) -> list[NewsletterSubscriber]:
    res = await db.execute(
        select(NewsletterSubscriber)
        .where(NewsletterSubscriber.is_active.is_(True))
        .order_by(NewsletterSubscriber.subscribed_at.desc(), NewsletterSubscriber.id.desc())
    )
    return list(res.scalars().all())


async def subscribe(
    db: AsyncSession,
    email: str,
    mailer: Mailer,
    settings: Settings,
) -> tuple[NewsletterSubscriber, bool]:
    """Returns the subscriber and whether the welcome email went out."""
    subscriber = await get_subscriber_by_email(db, email)
    if subscriber is not None and subscriber.is_active:
        raise ConflictError("This email is already subscribed to our newsletter", error="Email already subscribed")

    if subscriber is None:
        subscriber = NewsletterSubscriber(email=email.lower(), is_active=True, subscribed_at=utcnow())
        db.add(subscriber)
        action = "subscribed"
    else:
        subscriber.is_active = True
        subscriber.unsubscribed_at = None
        subscriber.subscribed_at = utcnow()
        action = "resubscribed"
    await db.commit()
    await db.refresh(subscriber)
    NEWSLETTER_SUBSCRIPTIONS_TOTAL.labels(action=action).inc()
    logger.info("newsletter_subscribed", subscriber_id=subscriber.id, action=action)

    html = render_template(
        "welcome.html",
        frontend_url=settings.FRONTEND_URL,
        unsubscribe_url=f"{settings.FRONTEND_URL.rstrip('/')}/newsletter/unsubscribe",
    )
    result = await send_one(mailer, subscriber.email, "Welcome to DVS Daily Newsletter! 🌟", html, kind="welcome")
    return subscriber, result.success


async def unsubscribe(db: AsyncSession, email: str) -> NewsletterSubscriber:
    subscriber = await get_subscriber_by_email(db, email)
    if subscriber is None:
        raise NotFoundError("This email is not subscribed to our newsletter", error="Email not found")

    subscriber.is_active = False
    subscriber.unsubscribed_at = utcnow()
    await db.commit()
    NEWSLETTER_SUBSCRIPTIONS_TOTAL.labels(action="unsubscribed").inc()
    logger.info("newsletter_unsubscribed", subscriber_id=subscriber.id)
    return subscriber


async def send_daily(
    db: AsyncSession,
    mailer: Mailer,
    settings: Settings,
    today: date,
    *,
    throttle: Throttle | None = None,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    subscribers = await list_active_subscribers(db)
    if not subscribers:
        logger.info("newsletter_send_skipped", reason="no_active_subscribers")
        return {"subscriber_count": 0}

    digest = await build_daily_digest(db, today, settings, rng=rng)
    throttle = throttle or Throttle(settings.MAIL_SEND_INTERVAL_SECONDS)
    results: list[DeliveryResult] = await deliver(
        mailer, [s.email for s in subscribers], digest.subject, digest.html, throttle, kind="daily"
    )
    sent = sum(1 for r in results if r.success)
    logger.info(
        "newsletter_daily_sent",
        subscriber_count=len(subscribers),
        emails_sent=sent,
        emails_failed=len(results) - sent,
    )
    return {
        "subject": digest.subject,
        "subscriber_count": len(subscribers),
        "emails_sent": sent,
        "emails_failed": len(results) - sent,
        "has_timings": bool(digest.timings),
        "has_daylight": digest.daylight is not None,
        "quote": digest.quote,
        "results": results,
    }


async def send_test_email(mailer: Mailer, email: str, settings: Settings) -> str:
    html = render_template("test_email.html", frontend_url=settings.FRONTEND_URL, sent_at=utcnow())
    result = await send_one(mailer, email, "DVS Email Test - Newsletter System", html, kind="test")
    if not result.success:
        raise UpstreamError(f"Failed to send test email: {result.error}", error="Failed to send test email")
    return result.message_id or ""
