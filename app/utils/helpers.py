from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_key(moment: datetime) -> str:
    """Calendar month key in the YYYY-MM form used by usage periods."""
    return moment.strftime("%Y-%m")
