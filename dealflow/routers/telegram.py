"""
Telegram router — webhook endpoint and update dispatch.

Endpoints:
    POST /telegram/webhook → accept an update, handle it in the background
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status

from dealflow.config import settings
from dealflow.schemas.telegram import CallbackQuery, Message, Update
from dealflow.services.lifecycle import LifecycleCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])

# "/cmd", "/cmd@SomeBot", "/cmd args..."
COMMAND_RE = re.compile(r"^/(?P<name>[A-Za-z0-9_]+)(?:@(?P<bot>\w+))?(?:\s+(?P<args>.*))?$", re.DOTALL)


def get_coordinator(request: Request) -> LifecycleCoordinator:
    return request.app.state.coordinator


# ═══════════════════════════════════════════════════════════════
#  Dispatch
# ═══════════════════════════════════════════════════════════════

async def dispatch_update(update: Update, coordinator: LifecycleCoordinator) -> None:
    """Route one update to the coordinator; never raises."""
    try:
        if update.callback_query is not None:
            await _handle_callback(update.callback_query, coordinator)
        elif update.message is not None and update.message.text:
            await _handle_message(update.message, coordinator)
    except Exception:
        logger.exception(f"Unhandled error while processing update {update.update_id}")


async def _handle_callback(query: CallbackQuery, coordinator: LifecycleCoordinator) -> None:
    if query.message is None:
        await coordinator.channel.answer_callback(query.id, "This poll is no longer available.")
        return
    await coordinator.vote(
        callback_id=query.id,
        chat_id=query.message.chat.id,
        chat_type=query.message.chat.type,
        message_id=query.message.message_id,
        user_id=query.from_user.id,
        username=query.from_user.display_name,
        data=query.data,
    )


async def _handle_message(message: Message, coordinator: LifecycleCoordinator) -> None:
    text = message.text.strip()
    chat_id = message.chat.id
    chat_type = message.chat.type
    user = message.from_user
    username = user.username if user else None

    match = COMMAND_RE.match(text)
    if match is None:
        if text.startswith("/"):
            return
        bot_username = await coordinator.bot_username()
        if bot_username and message.mentions(bot_username):
            logger.info(f"Received direct query in chat {chat_id}: {text!r}")
            await coordinator.answer_mention(chat_id, text)
        return

    addressed_to = match.group("bot")
    if addressed_to:
        bot_username = await coordinator.bot_username()
        if bot_username and addressed_to.lower() != bot_username.lower():
            logger.debug(f"Ignoring command for @{addressed_to} in chat {chat_id}")
            return

    name = match.group("name").lower()
    args = (match.group("args") or "").strip()

    if name == "start":
        await coordinator.start(chat_id)
    elif name == "help":
        await coordinator.help(chat_id, chat_type, username)
    elif name == "submit_investment":
        if user is None:
            return
        await coordinator.submit(chat_id, chat_type, user.id, user.display_name, args)
    elif name == "finalize_investment":
        await coordinator.finalize(chat_id, chat_type, username)
    elif name == "member_points":
        await coordinator.member_points(chat_id)
    elif name == "details":
        await coordinator.details(chat_id, chat_type, username, args)
    else:
        logger.debug(f"Ignoring unknown command /{name}")


# ═══════════════════════════════════════════════════════════════
#  POST /telegram/webhook
# ═══════════════════════════════════════════════════════════════

@router.post("/webhook")
async def telegram_webhook(
    update: Update,
    background_tasks: BackgroundTasks,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    if settings.TELEGRAM_WEBHOOK_SECRET and x_telegram_bot_api_secret_token != settings.TELEGRAM_WEBHOOK_SECRET:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook secret")

    # Reply to Telegram right away; generator calls can take a while.
    background_tasks.add_task(dispatch_update, update, coordinator)
    return {"ok": True}
