"""Session model for tracked work time."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel


class Session(BaseModel):
    """One contiguous span of tracked work time."""

    id: int
    start_time: datetime
    end_time: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def is_active(self) -> bool:
        """Check if session is still running."""
        return self.end_time is None

    def effective_end(self, now: datetime) -> datetime:
        """End time, or ``now`` while the session is running."""
        return self.end_time if self.end_time is not None else now

    def elapsed(self, now: datetime) -> timedelta:
        """Time worked in this session as of ``now``."""
        return self.effective_end(now) - self.start_time
