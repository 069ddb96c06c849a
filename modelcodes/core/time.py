"""Central time utilities for the application.

Columns are stored as TIMESTAMP WITHOUT TIME ZONE, so timestamps are
generated in UTC and stripped of their tzinfo before persisting.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as a naive datetime object.

    This replaces datetime.utcnow() while keeping naive values comparable
    with what the database returns for DateTime columns.

    Returns:
        datetime: Current UTC time as a naive datetime object
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
