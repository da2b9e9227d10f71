"""Conversation session expiry.

Active conversations that have been quiet for longer than
``session_inactivity_hours`` are ended, so the next customer message opens
a fresh conversation.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restobot.config import Settings, get_settings
from restobot.core.states import transition_conversation
from restobot.models.conversation import Conversation, ConversationStatus
from restobot.utils.phone import mask_phone

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 100


class SessionExpiryService:
    """Service for ending idle conversations."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        """Initialize the expiry service.

        Args:
            db: Async database session
            settings: Optional settings override, defaults to the cached settings
        """
        self._db = db
        self._settings = settings or get_settings()

    @property
    def inactivity_hours(self) -> int:
        """Get configured inactivity window in hours."""
        return self._settings.session_inactivity_hours

    def get_cutoff(self, hours: int | None = None, now: datetime | None = None) -> datetime:
        """Last-activity time before which a conversation counts as idle."""
        window = hours if hours is not None else self.inactivity_hours
        return (now or datetime.now(timezone.utc)) - timedelta(hours=window)

    def _last_activity(self):
        return func.coalesce(Conversation.last_message_at, Conversation.started_at)

    async def get_session_stats(self) -> dict[str, Any]:
        """Conversation counts per status and how many active ones are idle."""
        result = await self._db.execute(
            select(Conversation.status, func.count(Conversation.id)).group_by(Conversation.status)
        )
        by_status = {ConversationStatus(status).value: count for status, count in result.all()}

        idle = await self._db.scalar(
            select(func.count(Conversation.id)).where(
                Conversation.status == ConversationStatus.ACTIVE,
                self._last_activity() < self.get_cutoff(),
            )
        ) or 0

        return {
            "config": {"inactivity_hours": self.inactivity_hours},
            "by_status": by_status,
            "idle_active": idle,
        }

    async def expire_inactive(
        self,
        dry_run: bool = False,
        hours_override: int | None = None,
    ) -> dict[str, Any]:
        """End active conversations idle for longer than the inactivity window.

        Args:
            dry_run: If True, only report what would be ended
            hours_override: Optional override for the inactivity window

        Returns:
            Dict with the number of conversations ended (or that would be)
        """
        cutoff = self.get_cutoff(hours_override)
        result = await self._db.execute(
            select(Conversation)
            .where(
                Conversation.status == ConversationStatus.ACTIVE,
                self._last_activity() < cutoff,
            )
            .order_by(self._last_activity())
        )
        idle = list(result.scalars().all())
        hours = hours_override if hours_override is not None else self.inactivity_hours

        if dry_run:
            return {
                "dry_run": True,
                "would_expire": len(idle),
                "conversation_ids": [str(c.id) for c in idle[:PREVIEW_LIMIT]],
                "cutoff": cutoff.isoformat(),
                "inactivity_hours": hours,
            }

        for conversation in idle:
            transition_conversation(conversation, ConversationStatus.ENDED)
            logger.debug(
                f"Expired conversation {conversation.id} (phone: {mask_phone(conversation.customer_phone)})"
            )

        await self._db.flush()
        logger.info(f"Session expiry completed: {len(idle)} conversations ended")

        return {
            "dry_run": False,
            "expired": len(idle),
            "conversation_ids": [str(c.id) for c in idle[:PREVIEW_LIMIT]],
            "cutoff": cutoff.isoformat(),
            "inactivity_hours": hours,
        }
