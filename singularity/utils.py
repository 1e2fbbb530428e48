# singularity/utils.py
"""
General utility functions for the storage server.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

log = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    """Serializes a timestamp as an ISO-8601 UTC string."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parses a stored timestamp. Naive values are taken as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            log.warning("Unparseable timestamp in stored data: %r", value)
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def format_elapsed(total_seconds: float) -> str:
    """Formats seconds into a readable Days, Hours, Minutes string."""
    total_seconds = int(max(total_seconds, 0))
    if total_seconds < 60:
        return f"{total_seconds}s"

    minutes, seconds = divmod(total_seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    parts = []
    if days > 0: parts.append(f"{days}d")
    if hours > 0: parts.append(f"{hours}h")
    if minutes > 0: parts.append(f"{minutes}m")

    return " ".join(parts) if parts else "0m"


def format_since(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return "never"
    now = now or utc_now()
    return f"{format_elapsed((now - moment).total_seconds())} ago"


def format_scrap(amount: float) -> str:
    return f"{int(amount):,} scrap"


def split_args(args_str: str) -> List[str]:
    """Splits a command argument string on whitespace."""
    return args_str.strip().split() if args_str else []
