"""Typed accessors for the independent collections.

Every read decodes a fresh copy from the backend. Every mutation is a full
read-modify-write of one key under the store lock, followed by a change
notification once the lock is released. Updates and deletes of unknown ids
are no-ops.
"""

import logging
from datetime import timedelta
from typing import ClassVar, Generic, Sequence, TypeVar

from cybershield_shared import (
    CollectionCodec,
    CustomQuestion,
    QuestionOption,
    SupportTicket,
    TicketStatus,
    Visitor,
)

from .context import StorageKey, StoreContext, new_id
from .errors import ReservedIdentityError
from .events import ChangeEvent

logger = logging.getLogger(__name__)

RESERVED_IDENTITY = "admin"

T = TypeVar("T")


def normalize_username(username: str) -> str:
    return username.strip().lower()


class ListCollection(Generic[T]):
    """A collection stored as one JSON array under one key."""

    key: ClassVar[StorageKey]
    event: ClassVar[ChangeEvent]
    item_type: ClassVar[type]

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx
        self._codec: CollectionCodec[T] = CollectionCodec(self.item_type)

    def list(self) -> list[T]:
        return self._codec.decode(self._ctx.backend.get(self.key))

    def _save(self, items: Sequence[T]) -> None:
        self._ctx.policy.write(self.key, self._codec.encode(items))
        logger.debug("Saved %d items to %s", len(items), self.key)


class Tickets(ListCollection[SupportTicket]):
    key = StorageKey.TICKETS
    event = ChangeEvent.TICKETS
    item_type = SupportTicket

    def create(self, user_name: str, question: str) -> SupportTicket:
        ticket = SupportTicket(
            id=new_id(),
            user_name=user_name,
            question=question,
            timestamp=self._ctx.now(),
        )
        with self._ctx.lock:
            tickets = self.list()
            tickets.append(ticket)
            self._save(tickets)
        logger.info("Ticket %s created by %s", ticket.id, user_name)
        self._ctx.notify(self.event)
        return ticket

    def resolve(self, ticket_id: str, answer: str) -> None:
        """Answer a ticket and mark it resolved."""
        with self._ctx.lock:
            tickets = self.list()
            index = _index_of(tickets, ticket_id)
            if index is None:
                logger.debug("Ticket %s not found, nothing to resolve", ticket_id)
                return
            tickets[index] = tickets[index].model_copy(
                update={"answer": answer, "status": TicketStatus.RESOLVED}
            )
            self._save(tickets)
        self._ctx.notify(self.event)

    def delete(self, ticket_id: str) -> None:
        with self._ctx.lock:
            tickets = self.list()
            remaining = [t for t in tickets if t.id != ticket_id]
            if len(remaining) == len(tickets):
                return
            self._save(remaining)
        self._ctx.notify(self.event)

    def for_user(self, user_name: str) -> list[SupportTicket]:
        """Tickets raised under this name, newest first."""
        wanted = user_name.strip().lower()
        mine = [t for t in self.list() if t.user_name.strip().lower() == wanted]
        return sorted(mine, key=lambda t: t.timestamp, reverse=True)

    def for_review(self) -> list[SupportTicket]:
        """Pending tickets first, newest first within each status."""
        newest_first = sorted(self.list(), key=lambda t: t.timestamp, reverse=True)
        return sorted(newest_first, key=lambda t: t.status != TicketStatus.PENDING)

    def pending_count(self) -> int:
        return sum(1 for t in self.list() if t.status == TicketStatus.PENDING)


class BlockedUsers(ListCollection[str]):
    key = StorageKey.BLOCKED_USERS
    event = ChangeEvent.BLOCKED_USERS
    item_type = str

    def block(self, username: str) -> None:
        normalized = normalize_username(username)
        if not normalized:
            return
        with self._ctx.lock:
            users = self.list()
            if normalized in users:
                return
            users.append(normalized)
            self._save(users)
        logger.info("Blocked user %s", normalized)
        self._ctx.notify(self.event)

    def unblock(self, username: str) -> None:
        normalized = normalize_username(username)
        with self._ctx.lock:
            users = self.list()
            remaining = [u for u in users if u != normalized]
            if len(remaining) == len(users):
                return
            self._save(remaining)
        logger.info("Unblocked user %s", normalized)
        self._ctx.notify(self.event)

    def is_blocked(self, username: str) -> bool:
        return normalize_username(username) in self.list()


class CustomQuestions(ListCollection[CustomQuestion]):
    key = StorageKey.CUSTOM_QUESTIONS
    event = ChangeEvent.CUSTOM_QUESTIONS
    item_type = CustomQuestion

    def create(self, text: str, options: Sequence[str]) -> CustomQuestion:
        if not text.strip():
            raise ValueError("Question text is required")
        if len(options) < 2:
            raise ValueError("A question needs at least two options")
        if any(not option.strip() for option in options):
            raise ValueError("Options cannot be blank")

        question = CustomQuestion(
            id=new_id(),
            text=text,
            options=[
                QuestionOption(id=f"opt-{idx}", text=option)
                for idx, option in enumerate(options)
            ],
            created_at=self._ctx.now(),
        )
        with self._ctx.lock:
            questions = self.list()
            questions.append(question)
            self._save(questions)
        self._ctx.notify(self.event)
        return question

    def delete(self, question_id: str) -> None:
        with self._ctx.lock:
            questions = self.list()
            remaining = [q for q in questions if q.id != question_id]
            if len(remaining) == len(questions):
                return
            self._save(remaining)
        self._ctx.notify(self.event)


class Visitors(ListCollection[Visitor]):
    key = StorageKey.VISITORS
    event = ChangeEvent.VISITORS
    item_type = Visitor

    def upsert(self, username: str) -> Visitor | None:
        """Record activity for a user.

        Raises ReservedIdentityError for the operator identity. Blank names
        are ignored.
        """
        display = username.strip()
        if not display:
            return None
        if display.lower() == RESERVED_IDENTITY:
            raise ReservedIdentityError(username)

        now = self._ctx.now()
        with self._ctx.lock:
            visitors = self.list()
            for idx, visitor in enumerate(visitors):
                if visitor.username.lower() == display.lower():
                    visitors[idx] = visitor.model_copy(update={"last_seen": now})
                    result = visitors[idx]
                    break
            else:
                result = Visitor(username=display, last_seen=now)
                visitors.append(result)
            self._save(visitors)
        self._ctx.notify(self.event)
        return result

    def recent(self) -> list[Visitor]:
        """Visitors ordered by last activity, newest first."""
        return sorted(self.list(), key=lambda v: v.last_seen, reverse=True)

    def active(self, window: timedelta = timedelta(minutes=5)) -> list[Visitor]:
        cutoff = self._ctx.now() - window
        return [v for v in self.recent() if v.last_seen > cutoff]


class GlobalMessage:
    """Single broadcast message; absent when cleared."""

    key = StorageKey.GLOBAL_MESSAGE

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def get(self) -> str | None:
        return self._ctx.backend.get(self.key)

    def set(self, text: str) -> None:
        if not text.strip():
            self.clear()
            return
        with self._ctx.lock:
            self._ctx.policy.write(self.key, text)
        logger.info("Global message updated")
        self._ctx.notify(ChangeEvent.GLOBAL_MESSAGE)

    def clear(self) -> None:
        with self._ctx.lock:
            if self._ctx.backend.get(self.key) is None:
                return
            self._ctx.backend.remove(self.key)
        logger.info("Global message cleared")
        self._ctx.notify(ChangeEvent.GLOBAL_MESSAGE)


class LockdownFlag:
    """Global switch; an absent key reads as disabled."""

    key = StorageKey.LOCKDOWN

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def is_enabled(self) -> bool:
        return self._ctx.backend.get(self.key) == "true"

    def set(self, enabled: bool) -> None:
        with self._ctx.lock:
            if enabled:
                self._ctx.policy.write(self.key, "true")
            else:
                self._ctx.backend.remove(self.key)
        logger.warning("Lockdown %s", "enabled" if enabled else "disabled")
        self._ctx.notify(ChangeEvent.LOCKDOWN)


def _index_of(items: Sequence[SupportTicket], item_id: str) -> int | None:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return None
