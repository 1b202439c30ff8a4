"""
Telegram Bot API channel.

Outbound calls are best-effort: a failed send is logged and swallowed so a
flaky transport never aborts a lifecycle step. Falls back to simulation
mode (log only) when TELEGRAM_BOT_TOKEN is not set.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from dealflow.config import settings
from dealflow.schemas.telegram import TelegramUser, Update

logger = logging.getLogger(__name__)


def poll_keyboard() -> Dict[str, Any]:
    """Inline keyboard with the two poll buttons."""
    return {
        "inline_keyboard": [
            [
                {"text": "Yes", "callback_data": "yes"},
                {"text": "No", "callback_data": "no"},
            ]
        ]
    }


class TelegramChannel:
    def __init__(
        self,
        token: str = "",
        api_base: str = "https://api.telegram.org",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 40.0,
    ):
        self.token = token.strip()
        self._base = f"{api_base.rstrip('/')}/bot{self.token}"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._me: Optional[TelegramUser] = None

    @classmethod
    def from_settings(cls) -> "TelegramChannel":
        return cls(
            token=settings.TELEGRAM_BOT_TOKEN,
            api_base=settings.TELEGRAM_API_BASE,
            timeout=settings.POLL_TIMEOUT_SECONDS + 10,
        )

    async def _call(self, method: str, payload: Dict[str, Any]) -> Optional[Any]:
        if not self.token:
            logger.info(f"[telegram simulation] {method}: {payload}")
            return None

        try:
            resp = await self._client.post(f"{self._base}/{method}", json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram {method} failed: {e}")
            return None

        if not body.get("ok"):
            logger.error(f"Telegram {method} rejected: {body.get('description')}")
            return None
        return body.get("result")

    async def send_message(self, chat_id: int, text: str, reply_markup: Optional[Dict[str, Any]] = None):
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        return await self._call("sendMessage", payload)

    async def edit_message_text(self, text: str, chat_id: int, message_id: int):
        return await self._call(
            "editMessageText",
            {"chat_id": chat_id, "message_id": message_id, "text": text},
        )

    async def answer_callback(self, callback_id: str, text: Optional[str] = None):
        payload: Dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        return await self._call("answerCallbackQuery", payload)

    async def get_me(self) -> Optional[TelegramUser]:
        """The bot's own user, fetched once and cached."""
        if self._me is None:
            result = await self._call("getMe", {})
            if result:
                self._me = TelegramUser.model_validate(result)
        return self._me

    async def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> Optional[List[Update]]:
        """Long-poll for updates; ``None`` means the call itself failed."""
        payload: Dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload)
        if result is None:
            return None

        updates: List[Update] = []
        for item in result:
            try:
                updates.append(Update.model_validate(item))
            except ValidationError as e:
                update_id = item.get("update_id") if isinstance(item, dict) else None
                logger.warning(f"Skipping malformed update {update_id}: {e}")
                # Keep the id so the offset still moves past it.
                if isinstance(update_id, int):
                    updates.append(Update(update_id=update_id))
        return updates

    async def aclose(self) -> None:
        await self._client.aclose()
