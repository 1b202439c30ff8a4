"""
Telegram Bot API schemas.

Only the fields the bot reads are modelled; everything else in an update
is ignored.
"""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or "anonymous"


class Chat(_TelegramModel):
    id: int
    type: str = "private"

    @property
    def is_private(self) -> bool:
        return self.type == "private"


class MessageEntity(_TelegramModel):
    type: str
    offset: int
    length: int


class Message(_TelegramModel):
    message_id: int
    chat: Chat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None
    entities: List[MessageEntity] = []

    def mentions(self, username: str) -> bool:
        """True if the text carries a mention entity and names ``@username``."""
        if not self.text or not username:
            return False
        # Entity offsets are UTF-16 based, so match on the text instead of slicing.
        has_entity = any(e.type == "mention" for e in self.entities)
        pattern = rf"(?<![\w@])@{re.escape(username)}(?!\w)"
        return has_entity and re.search(pattern, self.text, re.IGNORECASE) is not None


class CallbackQuery(_TelegramModel):
    id: str
    from_user: TelegramUser = Field(alias="from")
    message: Optional[Message] = None
    data: Optional[str] = None


class Update(_TelegramModel):
    update_id: int
    message: Optional[Message] = None
    callback_query: Optional[CallbackQuery] = None
