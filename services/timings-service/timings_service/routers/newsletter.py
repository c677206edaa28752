from dataclasses import asdict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_db, get_mailer, require_admin
from ..models.users import User
from ..schemas.common import MessageResponse
from ..schemas.newsletter import (
    DeliveryResultResponse,
    DigestDaylightResponse,
    DigestTimingResponse,
    NewsletterPreviewResponse,
    SendDailyData,
    SendDailyResponse,
    SendTestEmailRequest,
    SendTestEmailResponse,
    SubscribeResponse,
    SubscriberListResponse,
    SubscriberResponse,
    SubscriptionRequest,
)
from ..services import newsletter_service
from ..services.mail_service import Mailer

router = APIRouter(prefix="/newsletter", tags=["newsletter"])


@router.post("/subscribe", response_model=SubscribeResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(
    payload: SubscriptionRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> SubscribeResponse:
    subscriber, email_sent = await newsletter_service.subscribe(db, payload.email, mailer, settings)
    return SubscribeResponse(
        message="Successfully subscribed to newsletter",
        subscriber=SubscriberResponse.model_validate(subscriber),
        email_sent=email_sent,
    )


@router.post("/unsubscribe", response_model=MessageResponse)
async def unsubscribe(
    payload: SubscriptionRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await newsletter_service.unsubscribe(db, payload.email)
    return MessageResponse(message="Successfully unsubscribed from newsletter")


@router.get("/subscribers", response_model=SubscriberListResponse)
async def list_subscribers(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> SubscriberListResponse:
    rows = await newsletter_service.list_active_subscribers(db)
    return SubscriberListResponse(
        subscribers=[SubscriberResponse.model_validate(s) for s in rows],
        count=len(rows),
    )


@router.post("/send-daily", response_model=SendDailyResponse)
async def send_daily(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> SendDailyResponse:
    summary = await newsletter_service.send_daily(db, mailer, settings, settings.local_today())
    if not summary["subscriber_count"]:
        return SendDailyResponse(message="No active subscribers found", data=SendDailyData(subscriber_count=0))

    results = [DeliveryResultResponse.model_validate(r) for r in summary.pop("results")]
    return SendDailyResponse(
        message="Daily newsletter sent successfully",
        data=SendDailyData(**summary, results=results),
    )


@router.get("/preview", response_model=NewsletterPreviewResponse)
async def preview(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> NewsletterPreviewResponse:
    digest = await newsletter_service.build_daily_digest(db, settings.local_today(), settings)
    return NewsletterPreviewResponse(
        subject=digest.subject,
        html=digest.html,
        timings=[DigestTimingResponse.model_validate(t) for t in digest.timings],
        daylight=DigestDaylightResponse(**asdict(digest.daylight)) if digest.daylight else None,
        quote=digest.quote,
    )


@router.post("/test-email", response_model=SendTestEmailResponse)
async def send_test_email(
    payload: SendTestEmailRequest,
    _: User = Depends(require_admin),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> SendTestEmailResponse:
    message_id = await newsletter_service.send_test_email(mailer, payload.email, settings)
    return SendTestEmailResponse(message="Test email sent successfully", message_id=message_id)
