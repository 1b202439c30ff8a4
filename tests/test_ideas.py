import pytest

from dealflow.models.idea import IdeaStatus
from dealflow.schemas.evaluation import EvaluationPackage
from dealflow.services.ideas import IdeaStore

PACKAGE = EvaluationPackage(
    summary="Condensed summary.",
    thesis="Investment Thesis: ...",
    risk="Moderate.",
    recommendations="Talk to founders.",
    score=8.5,
)


async def test_create_stores_a_pending_idea(session_factory):
    store = IdeaStore(session_factory)

    idea_id = await store.create("Solar microgrids", 10, "founder", PACKAGE)
    idea = await store.get(idea_id)

    assert idea.topic == "Solar microgrids"
    assert idea.submitter_id == 10
    assert idea.submitter_username == "founder"
    assert idea.research_summary == "Condensed summary."
    assert idea.recommendations == "Talk to founders."
    assert idea.evaluation_score == 8.5
    assert idea.status == IdeaStatus.PENDING
    assert idea.finalized_at is None


async def test_ids_are_assigned_monotonically(session_factory):
    store = IdeaStore(session_factory)

    first = await store.create("A", 1, "a", PACKAGE)
    second = await store.create("B", 1, "a", PACKAGE)

    assert second > first


async def test_finalize_transitions_exactly_once(session_factory):
    store = IdeaStore(session_factory)
    idea_id = await store.create("Solar microgrids", 10, "founder", PACKAGE)

    assert await store.finalize(idea_id, IdeaStatus.APPROVED) is True
    assert await store.finalize(idea_id, IdeaStatus.REJECTED) is False

    idea = await store.get(idea_id)
    assert idea.status == IdeaStatus.APPROVED
    assert idea.finalized_at is not None


async def test_finalize_unknown_idea(session_factory):
    assert await IdeaStore(session_factory).finalize(999, IdeaStatus.REJECTED) is False


async def test_finalize_rejects_pending_as_outcome(session_factory):
    with pytest.raises(ValueError):
        await IdeaStore(session_factory).finalize(1, IdeaStatus.PENDING)


async def test_get_missing_idea(session_factory):
    assert await IdeaStore(session_factory).get(12345) is None
