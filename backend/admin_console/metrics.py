"""Custom Prometheus metrics for admin console observability."""

from prometheus_client import Counter, Histogram

# Marketplace API round-trips
UPSTREAM_CALL_DURATION = Histogram(
    "admin_console_upstream_call_duration_seconds",
    "Duration of marketplace API calls",
    ["method", "status"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Dispute resolution outcomes
DISPUTE_RESOLUTIONS = Counter(
    "admin_console_dispute_resolutions_total",
    "Dispute resolution attempts",
    ["action", "outcome"],
)

# Referral admin overrides
REFERRAL_ACTIONS = Counter(
    "admin_console_referral_actions_total",
    "Referral admin actions",
    ["action", "outcome"],
)

# Service approval decisions
MODERATION_DECISIONS = Counter(
    "admin_console_moderation_decisions_total",
    "Service approval decisions",
    ["decision", "outcome"],
)

DOCUMENT_DOWNLOADS = Counter(
    "admin_console_document_downloads_total",
    "Documents served through the download proxy",
    ["outcome"],
)
