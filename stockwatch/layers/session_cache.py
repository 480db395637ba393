"""
Verified session cache for the Stock Watch availability checker.
Stores cookies from manual CAPTCHA verification per domain until they expire.
"""
from datetime import datetime
from typing import Dict, Optional

from stockwatch.models.session import VerifiedSession
from stockwatch.utils.logger import LayerLogger


class InMemorySessionRepository:
    """
    Session repository keyed by lower-cased domain.

    One session per domain; creating a new one replaces the old.
    """

    def __init__(self):
        self._sessions: Dict[str, VerifiedSession] = {}
        self.logger = LayerLogger("session_cache")

    def find_by_domain(self, domain: str, now: Optional[datetime] = None) -> Optional[VerifiedSession]:
        """Return the domain's session only if it has not expired."""
        session = self._sessions.get(domain.lower())
        if session is None or session.is_expired(now):
            return None
        return session

    def create(
        self,
        domain: str,
        cookies_json: str,
        user_agent: Optional[str],
        duration_days: int,
        now: Optional[datetime] = None,
    ) -> VerifiedSession:
        session = VerifiedSession.create(
            domain=domain,
            cookies_json=cookies_json,
            user_agent=user_agent,
            duration_days=duration_days,
            now=now,
        )
        self._sessions[session.domain] = session
        self.logger.log_action(
            "session_cached",
            "completed",
            domain=session.domain,
            expires_at=session.expires_at.isoformat(),
        )
        return session

    def delete_by_domain(self, domain: str) -> bool:
        return self._sessions.pop(domain.lower(), None) is not None

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        """Drop every expired session; returns how many were removed."""
        expired = [domain for domain, session in self._sessions.items() if session.is_expired(now)]
        for domain in expired:
            del self._sessions[domain]
        if expired:
            self.logger.log_action("session_cleanup", "completed", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
