from prometheus_client import Counter

USERS_REGISTERED_TOTAL = Counter(
    "dvs_users_registered_total",
    "Number of accounts created through registration",
)

LOGINS_TOTAL = Counter(
    "dvs_logins_total",
    "Login attempts by outcome",
    ["outcome"],
)

CATEGORY_WRITES_TOTAL = Counter(
    "dvs_category_writes_total",
    "Category create/update/delete operations",
    ["operation"],
)

GOOD_TIMING_WRITES_TOTAL = Counter(
    "dvs_good_timing_writes_total",
    "Good timing and time slot create/update/delete operations",
    ["entity", "operation"],
)

DAYLIGHT_WRITES_TOTAL = Counter(
    "dvs_daylight_writes_total",
    "Daylight upserts and deletions",
    ["operation"],
)

DAYLIGHT_ROWS_TRIMMED_TOTAL = Counter(
    "dvs_daylight_rows_trimmed_total",
    "Daylight rows removed by the retention trim",
)

CALENDAR_EVENT_WRITES_TOTAL = Counter(
    "dvs_calendar_event_writes_total",
    "Calendar event create/update/delete operations",
    ["operation"],
)

NEWSLETTER_SUBSCRIPTIONS_TOTAL = Counter(
    "dvs_newsletter_subscriptions_total",
    "Newsletter subscription changes",
    ["action"],
)

EMAILS_SENT_TOTAL = Counter(
    "dvs_emails_sent_total",
    "Emails handed to the SMTP relay by kind and outcome",
    ["kind", "outcome"],
)

WEATHER_LOOKUPS_TOTAL = Counter(
    "dvs_weather_lookups_total",
    "Daylight lookups served from cache or fetched upstream",
    ["source"],
)

RATE_LIMITED_TOTAL = Counter(
    "dvs_rate_limited_requests_total",
    "Requests rejected by the per-client rate limiter",
)

ERRORS_TOTAL = Counter(
    "dvs_errors_total",
    "Error responses by error class",
    ["error"],
)
