import pytest
from fastapi.testclient import TestClient

from dealflow.config import settings
from dealflow.main import app
from dealflow.routers.telegram import dispatch_update, get_coordinator
from dealflow.schemas.telegram import Update


class RecordingCoordinator:
    """Stands in for LifecycleCoordinator and records which entry point ran."""

    def __init__(self, channel):
        self.channel = channel
        self.calls = []

    async def bot_username(self):
        return "dao_bot"

    async def start(self, chat_id):
        self.calls.append(("start", chat_id))

    async def help(self, chat_id, chat_type, username):
        self.calls.append(("help", chat_id, chat_type, username))

    async def submit(self, chat_id, chat_type, user_id, username, topic):
        self.calls.append(("submit", chat_id, chat_type, user_id, username, topic))

    async def finalize(self, chat_id, chat_type, username):
        self.calls.append(("finalize", chat_id, chat_type, username))

    async def member_points(self, chat_id):
        self.calls.append(("member_points", chat_id))

    async def details(self, chat_id, chat_type, username, raw_id):
        self.calls.append(("details", chat_id, chat_type, username, raw_id))

    async def vote(self, **kwargs):
        self.calls.append(("vote", kwargs))

    async def answer_mention(self, chat_id, text):
        self.calls.append(("mention", chat_id, text))


def _message_update(text, chat_type="private", username="dao_admin", entities=None):
    message = {
        "message_id": 3,
        "chat": {"id": 500, "type": chat_type},
        "from": {"id": 1, "is_bot": False, "first_name": "A", "username": username},
        "text": text,
    }
    if entities is not None:
        message["entities"] = entities
    return Update.model_validate({"update_id": 1, "message": message})


@pytest.fixture
def recorder(channel):
    return RecordingCoordinator(channel)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("/start", ("start", 500)),
        ("/help", ("help", 500, "private", "dao_admin")),
        ("/submit_investment Solar microgrids", ("submit", 500, "private", 1, "dao_admin", "Solar microgrids")),
        ("/submit_investment@dao_bot  Wind farms ", ("submit", 500, "private", 1, "dao_admin", "Wind farms")),
        ("/finalize_investment", ("finalize", 500, "private", "dao_admin")),
        ("/member_points", ("member_points", 500)),
        ("/details 42", ("details", 500, "private", "dao_admin", "42")),
    ],
)
async def test_commands_are_routed(recorder, text, expected):
    await dispatch_update(_message_update(text), recorder)

    assert recorder.calls == [expected]


async def test_unknown_command_and_plain_text_are_ignored(recorder):
    await dispatch_update(_message_update("/launch_rockets"), recorder)
    await dispatch_update(_message_update("just chatting"), recorder)

    assert recorder.calls == []


async def test_mention_of_the_bot_is_answered(recorder):
    text = "@dao_bot what is the DAO?"
    await dispatch_update(_message_update(text, "group", entities=[{"type": "mention", "offset": 0, "length": 8}]), recorder)

    assert recorder.calls == [("mention", 500, text)]


async def test_mention_of_someone_else_is_ignored(recorder):
    text = "@alice what is the DAO?"
    await dispatch_update(_message_update(text, "group", entities=[{"type": "mention", "offset": 0, "length": 6}]), recorder)

    assert recorder.calls == []


async def test_callback_becomes_a_vote(recorder):
    update = Update.model_validate({
        "update_id": 2,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": 21, "is_bot": False, "first_name": "Alice"},
            "data": "yes",
            "message": {"message_id": 77, "chat": {"id": -300, "type": "group"}},
        },
    })

    await dispatch_update(update, recorder)

    assert recorder.calls == [("vote", {
        "callback_id": "cb-1",
        "chat_id": -300,
        "chat_type": "group",
        "message_id": 77,
        "user_id": 21,
        "username": "anonymous",
        "data": "yes",
    })]


async def test_dispatch_never_raises(channel):
    class Exploding(RecordingCoordinator):
        async def start(self, chat_id):
            raise RuntimeError("boom")

    await dispatch_update(_message_update("/start"), Exploding(channel))


def test_webhook_hands_update_to_coordinator(recorder, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "")
    app.dependency_overrides[get_coordinator] = lambda: recorder
    try:
        client = TestClient(app)
        resp = client.post("/telegram/webhook", json=_message_update("/member_points").model_dump(by_alias=True))
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert recorder.calls == [("member_points", 500)]


def test_webhook_checks_secret_token(recorder, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")
    app.dependency_overrides[get_coordinator] = lambda: recorder
    try:
        client = TestClient(app)
        payload = _message_update("/start").model_dump(by_alias=True)
        denied = client.post("/telegram/webhook", json=payload)
        allowed = client.post(
            "/telegram/webhook",
            json=payload,
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
        )
    finally:
        app.dependency_overrides.clear()

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert recorder.calls == [("start", 500)]


def test_health():
    assert TestClient(app).get("/health").json()["status"] == "ok"


async def test_command_for_another_bot_is_ignored(recorder):
    await dispatch_update(_message_update("/finalize_investment@OtherBot", "group"), recorder)

    assert recorder.calls == []


async def test_command_suffix_matches_bot_case_insensitively(recorder):
    await dispatch_update(_message_update("/start@DAO_Bot", "group"), recorder)

    assert recorder.calls == [("start", 500)]


async def test_longer_username_is_not_a_mention_of_the_bot(recorder):
    text = "@dao_bot_fan what is the DAO?"
    await dispatch_update(_message_update(text, "group", entities=[{"type": "mention", "offset": 0, "length": 12}]), recorder)

    assert recorder.calls == []


async def test_mention_inside_a_sentence_is_answered(recorder):
    text = "hey @dao_bot, what is the DAO?"
    await dispatch_update(_message_update(text, "group", entities=[{"type": "mention", "offset": 4, "length": 8}]), recorder)

    assert recorder.calls == [("mention", 500, text)]
