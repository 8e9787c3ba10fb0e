"""Single-slot handoff of free text typed at the canvas."""

from __future__ import annotations

from loguru import logger


class CanvasMailbox:
    """Holds the most recent canvas message until someone takes it."""

    def __init__(self) -> None:
        self._text: str | None = None

    def post(self, text: str | None) -> None:
        """Replace the held message; blank text clears it."""
        cleaned = text.strip() if isinstance(text, str) else ""
        self._text = cleaned or None
        logger.info("mailbox.post chars={}", len(cleaned))

    def peek(self) -> str | None:
        return self._text

    def take(self) -> str | None:
        """Return the held message and clear the slot."""
        text, self._text = self._text, None
        return text
