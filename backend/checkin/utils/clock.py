"""Time helpers shared by the services."""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)

def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    return int(round(moment.timestamp() * 1000))

def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
