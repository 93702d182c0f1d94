import hashlib
import secrets
from datetime import datetime, timedelta

from estate_market.core.date_helper import as_utc, utcnow


class UserGenerate:
    """Single-use tokens: the raw value goes to the user, only a digest is stored."""

    def generate_token(self, nbytes: int = 32) -> str:
        return secrets.token_urlsafe(nbytes)

    def digest(self, token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def issue(self, lifetime: timedelta) -> tuple[str, str, datetime]:
        raw = self.generate_token()
        return raw, self.digest(raw), utcnow() + lifetime

    def is_expired(self, expires_at: datetime | None) -> bool:
        return expires_at is None or as_utc(expires_at) <= utcnow()


user_generate = UserGenerate()
