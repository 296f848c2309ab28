from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time; injected wherever expiry is computed."""
    return datetime.now(timezone.utc)
