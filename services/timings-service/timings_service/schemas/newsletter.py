from datetime import datetime

from pydantic import BaseModel, EmailStr, field_validator


class SubscriptionRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class SendTestEmailRequest(SubscriptionRequest):
    pass


class SubscriberResponse(BaseModel):
    id: int
    email: str
    subscribed_at: datetime
    is_active: bool
    unsubscribed_at: datetime | None = None

    class Config:
        from_attributes = True


class SubscribeResponse(BaseModel):
    message: str
    subscriber: SubscriberResponse
    email_sent: bool


class SubscriberListResponse(BaseModel):
    subscribers: list[SubscriberResponse]
    count: int


class DeliveryResultResponse(BaseModel):
    email: str
    success: bool
    message_id: str | None = None
    error: str | None = None

    class Config:
        from_attributes = True


class SendDailyData(BaseModel):
    subject: str | None = None
    subscriber_count: int
    emails_sent: int = 0
    emails_failed: int = 0
    has_timings: bool = False
    has_daylight: bool = False
    quote: str | None = None
    results: list[DeliveryResultResponse] = []


class SendDailyResponse(BaseModel):
    message: str
    data: SendDailyData


class DigestTimingResponse(BaseModel):
    start_time: str
    end_time: str
    category_name: str | None = None
    category_color: str | None = None
    description: str | None = None

    class Config:
        from_attributes = True


class DigestDaylightResponse(BaseModel):
    sunrise_time: str
    sunset_time: str
    timezone: str


class NewsletterPreviewResponse(BaseModel):
    subject: str
    html: str
    timings: list[DigestTimingResponse]
    daylight: DigestDaylightResponse | None = None
    quote: str


class SendTestEmailResponse(BaseModel):
    message: str
    message_id: str | None = None
