from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Naive UTC timestamp, matching what the DateTime columns store.
    All expiry and window arithmetic is phrased against this.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
