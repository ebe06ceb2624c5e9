"""Who may talk to the bot on Telegram.

Bache chats in group channels, so an unset ``ALLOWED_USER_IDS`` opens it to
everyone.  A non-empty list restricts it to those users; anyone else is
ignored and logged once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from telegram import Update

from src.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Allowlist:
    user_ids: frozenset[int] = frozenset()
    _reported: set[int] = field(default_factory=set, repr=False)

    @classmethod
    def from_settings(cls) -> Allowlist:
        allowlist = cls(frozenset(settings.get_allowed_user_ids()))
        if allowlist.user_ids:
            logger.info("Telegram restricted to user IDs: %s", sorted(allowlist.user_ids))
        else:
            logger.info("Telegram open to every user")
        return allowlist

    @property
    def is_open(self) -> bool:
        return not self.user_ids

    def admits(self, user_id: int) -> bool:
        if self.is_open or user_id in self.user_ids:
            return True
        if user_id not in self._reported:
            self._reported.add(user_id)
            logger.warning("Ignoring messages from unlisted user %s", user_id)
        return False


_allowlist: Allowlist | None = None


def get_allowlist() -> Allowlist:
    global _allowlist  # noqa: PLW0603
    if _allowlist is None:
        _allowlist = Allowlist.from_settings()
    return _allowlist


def _reset() -> None:
    """Drop the cached allowlist (for testing)."""
    global _allowlist  # noqa: PLW0603
    _allowlist = None


def is_allowed(update: Update) -> bool:
    """True when the update has a sender the allowlist admits."""
    user = update.effective_user
    if user is None:
        return False
    return get_allowlist().admits(user.id)
