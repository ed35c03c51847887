"""
Meeting Link Provider

Creates the video meeting attached to a scheduled session. The default
provider derives a deterministic Meet-style link; other providers plug in
through ``get_meeting_provider``.
"""
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from genconnect import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeetingDetails:
    session_id: int
    reading_id: int
    topic: str
    start_time: datetime
    duration_minutes: int
    tutor_email: Optional[str] = None
    tutee_email: Optional[str] = None


@dataclass(frozen=True)
class MeetingLink:
    meeting_id: str
    join_url: str
    start_url: str


class MeetingProviderError(Exception):
    """Raised when a meeting could not be created"""


class MeetingLinkProvider:
    """Interface for meeting-link providers"""

    async def create_meeting(self, details: MeetingDetails) -> MeetingLink:
        raise NotImplementedError


class GoogleMeetLinkProvider(MeetingLinkProvider):
    """
    Derives a stable ``xxx-xxxx-xxxx`` meeting code from the session id,
    reading id and start instant, so repeated calls for the same session
    produce the same link.
    """

    def __init__(self, base_url: str = config.MEETING_BASE_URL):
        self.base_url = base_url.rstrip("/")

    async def create_meeting(self, details: MeetingDetails) -> MeetingLink:
        epoch_ms = int(details.start_time.replace(tzinfo=timezone.utc).timestamp() * 1000)
        seed = f"{details.session_id}-{details.reading_id}-{epoch_ms}"
        digest = hashlib.md5(seed.encode("utf-8")).hexdigest()
        code = f"{digest[0:3]}-{digest[3:7]}-{digest[7:11]}"
        url = f"{self.base_url}/{code}"

        logger.info(f"Meeting link created for session {details.session_id}: {url}")
        return MeetingLink(meeting_id=code, join_url=url, start_url=url)


# Global provider instance
_provider: Optional[MeetingLinkProvider] = None


def get_meeting_provider() -> MeetingLinkProvider:
    """Get or create global meeting provider (FastAPI dependency)."""
    global _provider
    if _provider is None:
        _provider = GoogleMeetLinkProvider()
    return _provider
