"""
Per-chat session tracking of the idea currently open for voting.

Bindings live only as long as the process. A chat tracks a single live
idea: opening a second poll in the same chat replaces the first binding.
"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class SessionTracker:
    def __init__(self):
        self._current: Dict[int, int] = {}

    def bind(self, chat_id: int, idea_id: int) -> None:
        previous = self._current.get(chat_id)
        if previous is not None and previous != idea_id:
            logger.info(f"Chat {chat_id} now tracks idea {idea_id} (was {previous})")
        self._current[chat_id] = idea_id

    def current(self, chat_id: int) -> Optional[int]:
        return self._current.get(chat_id)

    def clear(self, chat_id: int) -> None:
        self._current.pop(chat_id, None)

    def __len__(self) -> int:
        return len(self._current)
