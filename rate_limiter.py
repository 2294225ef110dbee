from sqlalchemy.orm import Session
from models import RateLimitHit
from datetime import datetime, timedelta
from typing import Optional
import logging

from scan_errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window request limits stored as one row per hit"""

    def __init__(self, db: Session):
        self.db = db

    def check(self, key: str, max_hits: int, window_minutes: int, label: str = "Request",
              unit: str = "requests", now: Optional[datetime] = None) -> int:
        """Count a hit for key, or raise RateLimitExceeded if the window is full.
        Returns the number of hits in the window including this one."""
        now = now or datetime.utcnow()
        window_start = now - timedelta(minutes=window_minutes)

        # Old hits for this key no longer matter
        self.db.query(RateLimitHit).filter(
            RateLimitHit.key == key,
            RateLimitHit.created_at < window_start,
        ).delete(synchronize_session=False)

        hits = self.db.query(RateLimitHit).filter(
            RateLimitHit.key == key,
            RateLimitHit.created_at >= window_start,
        ).count()

        if hits >= max_hits:
            self.db.commit()
            logger.warning(f"Rate limit hit for {key}: {hits}/{max_hits} in {window_minutes} minutes")
            raise RateLimitExceeded(
                f"{label} rate limit exceeded. Max {max_hits} {unit} per {window_minutes} minutes."
            )

        self.db.add(RateLimitHit(key=key, created_at=now))
        self.db.commit()
        return hits + 1
