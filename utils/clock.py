"""Single source of "now" for the services, so tests can pin the time."""
from datetime import datetime, timezone


def utc_now():
    """Current UTC time as a naive datetime (the form stored in the database)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
