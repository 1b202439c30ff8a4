from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import dealflow.models  # noqa: F401
from dealflow.database import Base, build_session_factory
from dealflow.errors import GenerationError
from dealflow.schemas.telegram import TelegramUser
from dealflow.services.ideas import IdeaStore
from dealflow.services.ledger import Ledger
from dealflow.services.lifecycle import LifecycleCoordinator
from dealflow.services.sessions import SessionTracker
from dealflow.services.tally import FeedbackTally

ADMIN = "dao_admin"
GROUPS = [-100, -200]


def _step_for(prompt: str) -> str:
    if "provide recommendations" in prompt:
        return "recommendations"
    if "provide a risk assessment" in prompt:
        return "risk"
    if "numeric score" in prompt:
        return "score"
    if "Summarize the following research" in prompt:
        return "summary"
    if "JSON object" in prompt:
        return "intent"
    if "Answer this investment-related question" in prompt:
        return "answer"
    raise AssertionError(f"Unexpected prompt: {prompt!r}")


class FakeGenerator:
    """Scripted narrative generator keyed by pipeline step."""

    def __init__(self):
        self.replies: Dict[str, str] = {
            "summary": "Condensed summary.",
            "risk": "Moderate execution risk.",
            "recommendations": "Check the unit economics.",
            "score": "8",
            "intent": '{"intent": "other", "query": "anything"}',
            "answer": "Diversify.",
        }
        self.failing = set()
        self.calls: List[str] = []

    async def complete(self, prompt: str, max_tokens: int = 150, temperature: float = 0.5) -> str:
        step = _step_for(prompt)
        self.calls.append(step)
        if step in self.failing:
            raise GenerationError(f"{step} unavailable")
        return self.replies[step]


@dataclass
class Sent:
    chat_id: int
    text: str
    reply_markup: Optional[Dict[str, Any]] = None


class FakeChannel:
    """Records every outbound call instead of talking to Telegram."""

    def __init__(self, bot_username: str = "dao_bot"):
        self.bot_username = bot_username
        self.sent: List[Sent] = []
        self.edits: List[Tuple[int, int, str]] = []
        self.answers: List[Tuple[str, Optional[str]]] = []

    async def send_message(self, chat_id, text, reply_markup=None):
        self.sent.append(Sent(chat_id, text, reply_markup))

    async def edit_message_text(self, text, chat_id, message_id):
        self.edits.append((chat_id, message_id, text))

    async def answer_callback(self, callback_id, text=None):
        self.answers.append((callback_id, text))

    async def get_me(self):
        return TelegramUser(id=1, is_bot=True, first_name="DAO", username=self.bot_username)

    def texts(self, chat_id: int) -> List[str]:
        return [m.text for m in self.sent if m.chat_id == chat_id]

    def last(self, chat_id: int) -> str:
        return self.texts(chat_id)[-1]


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def coordinator(session_factory, channel, generator):
    return LifecycleCoordinator(
        channel=channel,
        generator=generator,
        ideas=IdeaStore(session_factory),
        tally=FeedbackTally(session_factory),
        ledger=Ledger(session_factory),
        sessions=SessionTracker(),
        admin_username=ADMIN,
        group_chat_ids=GROUPS,
        score_threshold=7.0,
    )
