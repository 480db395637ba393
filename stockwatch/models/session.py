"""
Verified session model for the Stock Watch availability checker.
A session is created after a human solves a CAPTCHA in a visible browser
window and is cached per domain until it expires.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerifiedSession(BaseModel):
    """Cookies captured from a manually verified browser session."""
    domain: str
    cookies_json: str
    user_agent: Optional[str] = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        domain: str,
        cookies_json: str,
        user_agent: Optional[str],
        duration_days: int,
        now: Optional[datetime] = None,
    ) -> "VerifiedSession":
        """Build a session that expires ``duration_days`` after ``now``."""
        created = now or _utcnow()
        return cls(
            domain=domain.lower(),
            cookies_json=cookies_json,
            user_agent=user_agent,
            expires_at=created + timedelta(days=duration_days),
            created_at=created,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) >= self.expires_at
