"""Signed-in user holder standing in for the hosted auth backend."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


def normalize_user_id(raw: str) -> str:
    """Validate a user id; email-like ids are lower-cased.

    Raises:
        ValueError: if the id is blank.
    """
    cleaned = raw.strip()
    if not cleaned:
        raise ValueError("User id must not be blank")
    if "@" in cleaned:
        cleaned = cleaned.lower()
    return cleaned


class AuthSession:
    """Holds the current user id, if any."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id: str | None = None
        self._listeners: list[Callable[[str | None], None]] = []
        if user_id:
            self.sign_in(user_id)

    def current_user(self) -> str | None:
        return self._user_id

    @property
    def is_signed_in(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str) -> str:
        """Sign in as ``user_id`` and return the normalized id."""
        normalized = normalize_user_id(user_id)
        self._user_id = normalized
        logger.info("Signed in as %s", normalized)
        self._notify()
        return normalized

    def sign_out(self) -> None:
        if self._user_id is None:
            return
        logger.info("Signed out %s", self._user_id)
        self._user_id = None
        self._notify()

    def subscribe(self, callback: Callable[[str | None], None]) -> None:
        """Call ``callback`` with the new user id after every sign-in/out."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self._user_id)


__all__ = ["AuthSession", "normalize_user_id"]
