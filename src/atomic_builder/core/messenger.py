"""
User-facing status messages collected while handling one request.

Services push messages here instead of raising, and the routes return them
alongside the response payload so the UI can flash them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

logger = logging.getLogger("quart.app")

STATUS = "status"
WARNING = "warning"
ERROR = "error"


@dataclass
class Messenger:
    """Ordered list of messages for a single request."""

    messages: List[Dict[str, str]] = field(default_factory=list)

    def add_message(self, message: str, message_type: str = STATUS) -> None:
        self.messages.append({"type": message_type, "message": message})

    def add_status(self, message: str) -> None:
        self.add_message(message, STATUS)

    def add_warning(self, message: str) -> None:
        self.add_message(message, WARNING)

    def add_error(self, message: str) -> None:
        logger.warning(message)
        self.add_message(message, ERROR)

    def has_errors(self) -> bool:
        return any(m["type"] == ERROR for m in self.messages)

    def all(self) -> List[Dict[str, str]]:
        return list(self.messages)

    def clear(self) -> None:
        self.messages.clear()
