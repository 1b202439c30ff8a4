"""
Idea lifecycle coordinator.

Drives a pitch through Draft → Scored → Stored → Polling → Finalized:

    submit()    evaluate, gate on score, persist, bind the chat, open the poll
    vote()      record a yes/no against the chat's bound idea, +1 point
    finalize()  tally, decide by strict majority, settle bonuses, unbind

Authorization and "nothing bound" failures are reported to the chat as
plain messages. Store failures are surfaced only on submission; on the
vote and settlement paths they are logged and the flow carries on.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from dealflow.config import settings
from dealflow.errors import AuthorizationError, GenerationError, NotFoundError, StoreError
from dealflow.models.idea import IdeaStatus, InvestmentIdea
from dealflow.schemas.evaluation import ClassifiedIntent, EvaluationPackage, IntentKind
from dealflow.services import prompts
from dealflow.services.evaluation import EvaluationPipeline
from dealflow.services.ideas import IdeaStore
from dealflow.services.intent import IntentClassifier
from dealflow.services.ledger import ALIGNMENT_BONUS, APPROVAL_BONUS, VOTE_POINTS, Ledger
from dealflow.services.messaging import TelegramChannel, poll_keyboard
from dealflow.services.narrative import NarrativeGenerator
from dealflow.services.sessions import SessionTracker
from dealflow.services.tally import FeedbackTally, Tally, normalize_vote

logger = logging.getLogger(__name__)

PRIVATE_CHAT = "private"


@dataclass(frozen=True)
class FinalizeResult:
    idea_id: int
    tally: Tally
    outcome: IdeaStatus
    settled: bool = True


def _fmt_score(score: float) -> str:
    return f"{score:g}"


def format_package(topic: str, package: EvaluationPackage) -> str:
    return (
        f'Topic: "{topic}"\n\n'
        f"Research Summary: {package.summary}\n"
        f"Thesis: {package.thesis}\n"
        f"Risk: {package.risk}\n"
        f"Recommendations: {package.recommendations}"
    )


def format_details(idea: InvestmentIdea) -> str:
    status = getattr(idea.status, "value", idea.status)
    submitted_at = idea.created_at.isoformat() if idea.created_at else ""
    return (
        f"Idea ID: {idea.id}\n"
        f"Topic: {idea.topic}\n"
        f"Submitted by: @{idea.submitter_username} (ID: {idea.submitter_id})\n"
        f"Research Summary: {idea.research_summary}\n"
        f"Thesis: {idea.thesis}\n"
        f"Risk Assessment: {idea.risk_assessment}\n"
        f"Recommendations: {idea.recommendations}\n"
        f"Evaluation Score: {_fmt_score(idea.evaluation_score or 0.0)}\n"
        f"Status: {status}\n"
        f"Submitted At: {submitted_at}"
    )


class LifecycleCoordinator:
    def __init__(
        self,
        channel: TelegramChannel,
        generator: NarrativeGenerator,
        ideas: IdeaStore,
        tally: FeedbackTally,
        ledger: Ledger,
        sessions: SessionTracker,
        admin_username: str = "",
        group_chat_ids: Iterable[int] = (),
        score_threshold: float = 7.0,
        gate_enabled: bool = True,
    ):
        self.channel = channel
        self.generator = generator
        self.pipeline = EvaluationPipeline(generator)
        self.classifier = IntentClassifier(generator)
        self.ideas = ideas
        self.tally = tally
        self.ledger = ledger
        self.sessions = sessions
        self.admin_username = admin_username.lstrip("@")
        self.group_chat_ids: List[int] = list(group_chat_ids)
        self.score_threshold = score_threshold
        self.gate_enabled = gate_enabled

        self._intent_handlers: Dict[IntentKind, Callable[[ClassifiedIntent], Awaitable[str]]] = {
            IntentKind.INVESTMENT_QUERY: self._answer_investment_query,
            IntentKind.GENERAL_INFO: self._answer_general_info,
            IntentKind.SEARCH_QUERY: self._answer_search_query,
            IntentKind.OTHER: self._answer_other,
        }

    @classmethod
    def from_settings(
        cls,
        session_factory,
        channel: TelegramChannel,
        generator: NarrativeGenerator,
    ) -> "LifecycleCoordinator":
        return cls(
            channel=channel,
            generator=generator,
            ideas=IdeaStore(session_factory),
            tally=FeedbackTally(session_factory, one_vote_per_member=settings.ONE_VOTE_PER_MEMBER),
            ledger=Ledger(session_factory),
            sessions=SessionTracker(),
            admin_username=settings.ADMIN_USERNAME,
            group_chat_ids=settings.group_chat_ids,
            score_threshold=settings.SCORE_THRESHOLD,
            gate_enabled=settings.SCORE_GATE_ENABLED,
        )

    # ═══════════════════════════════════════════════════════════════
    #  Roles
    # ═══════════════════════════════════════════════════════════════

    def is_privileged(self, username: Optional[str]) -> bool:
        return bool(self.admin_username) and username == self.admin_username

    def _require_operator(self, chat_type: str, username: Optional[str], action: str) -> None:
        if chat_type != PRIVATE_CHAT or not self.is_privileged(username):
            raise AuthorizationError(f"You are not authorized to {action}.")

    def _bound_idea(self, chat_id: int, message: str) -> int:
        idea_id = self.sessions.current(chat_id)
        if idea_id is None:
            raise NotFoundError(message)
        return idea_id

    async def bot_username(self) -> Optional[str]:
        me = await self.channel.get_me()
        return me.username if me else None

    # ═══════════════════════════════════════════════════════════════
    #  /start and /help
    # ═══════════════════════════════════════════════════════════════

    async def start(self, chat_id: int) -> None:
        admin = f"@{self.admin_username}" if self.admin_username else "the operator"
        await self.channel.send_message(
            chat_id,
            "Welcome to the Investment DAO Bot!\n\n"
            f"For Admin ({admin}):\n"
            "• Full commands are available via personal chat.\n\n"
            "For Founders:\n"
            "• Use /submit_investment <topic> to pitch your idea. Your pitch will be "
            "evaluated, and if approved, forwarded to our groups.\n\n"
            "Use /help to view commands.",
        )

    async def help(self, chat_id: int, chat_type: str, username: Optional[str]) -> None:
        if chat_type == PRIVATE_CHAT and self.is_privileged(username):
            text = (
                "Admin Commands:\n"
                "• /submit_investment <topic> - Submit an investment idea.\n"
                "• /finalize_investment - Finalize the current idea and tally votes.\n"
                "• /member_points - Display member incentive points.\n"
                "• /details <idea_id> - Get full details of a specific idea.\n\n"
                "For Founders (in private chat):\n"
                "• /submit_investment <topic> - Submit your pitch. It will be evaluated "
                "and, if good, forwarded to the groups."
            )
        else:
            text = (
                "Available Commands:\n"
                "• /submit_investment <topic> - Submit an investment idea.\n"
                "• /member_points - View the member points leaderboard."
            )
        await self.channel.send_message(chat_id, text)

    # ═══════════════════════════════════════════════════════════════
    #  Submission: Draft → Scored → Stored → Polling
    # ═══════════════════════════════════════════════════════════════

    async def submit(
        self,
        chat_id: int,
        chat_type: str,
        user_id: int,
        username: str,
        topic: str,
    ) -> Optional[int]:
        """Evaluate and open a poll for a pitch; returns the new idea id, if stored."""
        topic = (topic or "").strip()
        if not topic:
            await self.channel.send_message(chat_id, "Usage: /submit_investment <topic>")
            return None

        privileged = self.is_privileged(username)
        await self.channel.send_message(chat_id, f'Pitch received: "{topic}"')

        package = await self.pipeline.evaluate(topic, submitter_is_privileged=privileged)

        if self.gate_enabled and not package.passes_gate(self.score_threshold):
            logger.info(f"Pitch {topic!r} from {username} gated out with score {package.score}")
            await self.channel.send_message(
                chat_id,
                f"Thank you for your pitch. Unfortunately, your idea scored {_fmt_score(package.score)} "
                f"(threshold is {_fmt_score(self.score_threshold)}). Please review and try again later.",
            )
            return None

        try:
            idea_id = await self.ideas.create(topic, user_id, username, package)
        except StoreError as e:
            logger.error(f"Failed to store pitch {topic!r} from {username}: {e}")
            await self.channel.send_message(
                chat_id, "Failed to store the investment idea. Please try again later."
            )
            return None

        self.sessions.bind(chat_id, idea_id)
        await self._open_poll(chat_id, chat_type, username, privileged, topic, package)
        return idea_id

    async def _open_poll(
        self,
        chat_id: int,
        chat_type: str,
        username: str,
        privileged: bool,
        topic: str,
        package: EvaluationPackage,
    ) -> None:
        score = _fmt_score(package.score)

        # Founder pitch from a private chat goes out to the distribution channels.
        # Those channels are not bound to the idea.
        if not privileged and chat_type == PRIVATE_CHAT and self.group_chat_ids:
            await self.channel.send_message(
                chat_id,
                f"Your pitch scored {score} and has been approved. "
                "It will now be forwarded to our groups for votes.",
            )
            text = f"New Investment Pitch from @{username}:\n{format_package(topic, package)}\n\nVote below:"
            await asyncio.gather(*(
                self.channel.send_message(group_id, text, reply_markup=poll_keyboard())
                for group_id in self.group_chat_ids
            ))
            return

        await self.channel.send_message(
            chat_id,
            f"{format_package(topic, package)}\n\n"
            f"Idea approved with score {score}. Do you approve this investment idea?",
            reply_markup=poll_keyboard(),
        )

    # ═══════════════════════════════════════════════════════════════
    #  Vote intake
    # ═══════════════════════════════════════════════════════════════

    async def vote(
        self,
        callback_id: str,
        chat_id: int,
        chat_type: str,
        message_id: Optional[int],
        user_id: int,
        username: str,
        data: Optional[str],
    ) -> bool:
        """Record a poll answer against the chat's bound idea; True if it counted."""
        idea_id = self.sessions.current(chat_id)
        if idea_id is None:
            await self.channel.answer_callback(callback_id, "No active investment idea.")
            return False

        try:
            vote = normalize_vote(data or "")
        except ValueError:
            await self.channel.answer_callback(callback_id, "Unknown vote.")
            return False

        try:
            recorded = await self.tally.record_vote(idea_id, user_id, username, vote)
        except StoreError as e:
            logger.error(f"Dropped vote {vote!r} by {username} on idea {idea_id}: {e}")
            await self.channel.answer_callback(callback_id)
            return False

        if not recorded:
            await self.channel.answer_callback(callback_id, "You have already voted on this idea.")
            return False

        await self._award_quietly(user_id, username, VOTE_POINTS)

        confirmation = f'Your vote "{vote}" has been recorded. Thank you for your participation!'
        # Editing a group poll would remove the buttons for everyone else.
        if chat_type == PRIVATE_CHAT and message_id is not None:
            await self.channel.edit_message_text(confirmation, chat_id, message_id)
            await self.channel.answer_callback(callback_id)
        else:
            await self.channel.answer_callback(callback_id, confirmation)
        return True

    # ═══════════════════════════════════════════════════════════════
    #  Finalization: Polling → Finalized
    # ═══════════════════════════════════════════════════════════════

    async def finalize(self, chat_id: int, chat_type: str, username: Optional[str]) -> Optional[FinalizeResult]:
        try:
            self._require_operator(chat_type, username, "finalize ideas")
            idea_id = self._bound_idea(chat_id, "No active investment idea to finalize.")
        except (AuthorizationError, NotFoundError) as e:
            await self.channel.send_message(chat_id, str(e))
            return None

        try:
            tally = await self.tally.count_votes(idea_id)
        except StoreError as e:
            logger.error(f"Could not tally idea {idea_id}: {e}")
            await self.channel.send_message(
                chat_id, "Failed to read the votes for this idea. Please try again later."
            )
            return None

        outcome = IdeaStatus.APPROVED if tally.yes > tally.no else IdeaStatus.REJECTED
        summary = (
            f"Finalized Investment Idea (ID: {idea_id}):\n"
            f"Yes votes: {tally.yes} | No votes: {tally.no}\n"
            f"Outcome: {outcome.value.upper()}\n"
        )

        try:
            transitioned = await self.ideas.finalize(idea_id, outcome)
        except StoreError as e:
            # Binding is kept so the operator can finalize again; nothing was settled.
            logger.error(f"Could not write outcome {outcome.value} for idea {idea_id}: {e}")
            await self.channel.send_message(
                chat_id, summary + "Bonus points were not awarded; run /finalize_investment again."
            )
            return FinalizeResult(idea_id, tally, outcome, settled=False)

        if not transitioned:
            self.sessions.clear(chat_id)
            await self.channel.send_message(
                chat_id, f"Investment idea {idea_id} has already been finalized."
            )
            return None

        await self._settle(idea_id, outcome, tally)
        await self.channel.send_message(chat_id, summary + "Bonus points awarded.")
        self.sessions.clear(chat_id)
        logger.info(f"Idea {idea_id} finalized as {outcome.value} ({tally.yes} yes / {tally.no} no)")
        return FinalizeResult(idea_id, tally, outcome)

    async def _settle(self, idea_id: int, outcome: IdeaStatus, tally: Tally) -> None:
        """Approval bonus to the submitter, alignment bonus to majority-side voters."""
        if outcome is IdeaStatus.APPROVED:
            try:
                idea = await self.ideas.get(idea_id)
            except StoreError as e:
                logger.error(f"Could not load submitter of idea {idea_id}: {e}")
                idea = None
            if idea is not None:
                await self._award_quietly(idea.submitter_id, idea.submitter_username, APPROVAL_BONUS)

        aligned_vote = tally.majority
        if aligned_vote is None:
            return
        try:
            voters = await self.tally.voters(idea_id, aligned_vote)
        except StoreError as e:
            logger.error(f"Could not list {aligned_vote!r} voters of idea {idea_id}: {e}")
            return
        for voter in voters:
            await self._award_quietly(voter.member_id, voter.member_username, ALIGNMENT_BONUS)

    async def _award_quietly(self, member_id: int, member_name: str, delta: int) -> None:
        try:
            await self.ledger.award(member_id, member_name, delta)
        except StoreError as e:
            logger.error(f"Lost award of {delta} points for {member_name} ({member_id}): {e}")

    # ═══════════════════════════════════════════════════════════════
    #  /member_points and /details
    # ═══════════════════════════════════════════════════════════════

    async def member_points(self, chat_id: int) -> None:
        try:
            members = await self.ledger.leaderboard()
        except StoreError as e:
            logger.error(f"Could not load the leaderboard: {e}")
            await self.channel.send_message(chat_id, "Could not load member points right now.")
            return

        if not members:
            await self.channel.send_message(chat_id, "No member points recorded yet.")
            return
        lines = ["Member Incentive Points:"]
        lines.extend(f"{username}: {points} points" for username, points in members)
        await self.channel.send_message(chat_id, "\n".join(lines))

    async def details(self, chat_id: int, chat_type: str, username: Optional[str], raw_id: str) -> None:
        try:
            self._require_operator(chat_type, username, "access idea details")
            raw_id = (raw_id or "").strip()
            if not raw_id:
                await self.channel.send_message(chat_id, "Usage: /details <idea_id>")
                return
            idea = await self._lookup(raw_id)
        except (AuthorizationError, NotFoundError) as e:
            await self.channel.send_message(chat_id, str(e))
            return
        await self.channel.send_message(chat_id, format_details(idea))

    async def _lookup(self, raw_id: str) -> InvestmentIdea:
        try:
            idea = await self.ideas.get(int(raw_id))
        except ValueError:
            idea = None
        except StoreError as e:
            logger.error(f"Idea lookup for {raw_id!r} failed: {e}")
            idea = None
        if idea is None:
            raise NotFoundError("Idea not found.")
        return idea

    # ═══════════════════════════════════════════════════════════════
    #  Free-form mentions
    # ═══════════════════════════════════════════════════════════════

    async def answer_mention(self, chat_id: int, text: str) -> ClassifiedIntent:
        intent = await self.classifier.classify(text)
        reply = await self._intent_handlers[intent.kind](intent)
        await self.channel.send_message(chat_id, reply)
        return intent

    async def _answer_investment_query(self, intent: ClassifiedIntent) -> str:
        try:
            return await self.generator.complete(
                prompts.investment_answer_prompt.format(query=intent.query),
                max_tokens=100,
                temperature=0.5,
            )
        except GenerationError as e:
            logger.warning(f"Investment query failed ({e})")
            return "I encountered an issue processing your query."

    async def _answer_general_info(self, intent: ClassifiedIntent) -> str:
        return f"General info: {intent.query}\nUse /help to see how pitches, votes and points work."

    async def _answer_search_query(self, intent: ClassifiedIntent) -> str:
        return f'I recognized a search query, but live search is not connected yet. You asked: "{intent.query}"'

    async def _answer_other(self, intent: ClassifiedIntent) -> str:
        return f"Let me look that up for you: {intent.query}"
