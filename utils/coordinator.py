import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from fastapi import Depends
from sqlalchemy.orm import Session
from database.db import get_db
from database.store import QueueStore, SqlQueueStore
from schema.records import QueueRecord, EntryRecord
from utils.errors import (
    AlreadyInQueue,
    EntryNotFound,
    InvalidEntryState,
    JoinFailed,
    QueueBusy,
    QueueConflict,
)
from utils.global_settings import settings, setup_logging
from utils.sequencer import TicketSequencer

setup_logging()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinedTicket:
    queue_id: int
    entry_id: int
    ticket_number: int


@dataclass(frozen=True)
class CalledTicket:
    queue_id: int
    entry_id: int
    ticket_number: int
    user_id: str
    user_name: str


class QueueCoordinator:
    """
    Join, advance and cancel against one QueueStore.

    Each operation reads a fresh snapshot, decides, and commits against the
    snapshot's version. A lost race (QueueConflict) starts the operation over
    from the read; the retry budgets come from settings.
    """

    def __init__(
        self,
        store: QueueStore,
        join_retry_limit: Optional[int] = None,
        advance_retry_limit: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.sequencer = TicketSequencer(store)
        self.join_retry_limit = join_retry_limit or settings.join_retry_limit
        self.advance_retry_limit = advance_retry_limit or settings.advance_retry_limit
        self.clock = clock

    def create_queue(self, name: str, description: str = "", average_wait_time: int = 0) -> QueueRecord:
        return self.store.create_queue(name, description, average_wait_time)

    def join_queue(self, queue_id: int, user_id: str, user_name: str) -> JoinedTicket:
        """
        Issue the next ticket of a queue to a user.

        Args:
            queue_id (int): The queue to join.
            user_id (str): Caller identity.
            user_name (str): Display name stored on the entry.

        Returns:
            JoinedTicket: The committed ticket number and entry id.

        Raises:
            QueueNotFound: If the queue does not exist.
            AlreadyInQueue: If the user already has a waiting entry in this queue.
            JoinFailed: If every attempt lost a race against another writer.
        """
        # best-effort, two simultaneous joins by the same user can both pass
        existing = self.store.find_waiting_entry(queue_id, user_id)
        if existing is not None:
            raise AlreadyInQueue(queue_id, user_id, existing.ticket_number)

        for attempt in range(1, self.join_retry_limit + 1):
            issued = self.sequencer.next_ticket(queue_id)
            try:
                entry = self.store.commit_join(issued, user_id, user_name, self.clock())
            except QueueConflict:
                logger.debug(f"join on queue {queue_id} lost a race at version {issued.queue.version}, attempt {attempt}")
                continue
            logger.info(f"user {user_id} joined queue {queue_id} with ticket #{entry.ticket_number}")
            return JoinedTicket(queue_id=queue_id, entry_id=entry.id, ticket_number=entry.ticket_number)

        logger.error(f"join on queue {queue_id} failed after {self.join_retry_limit} attempts")
        raise JoinFailed(queue_id, self.join_retry_limit)

    def advance_queue(self, queue_id: int) -> Optional[CalledTicket]:
        """
        Call the next ticket of a queue.

        The next ticket is the waiting entry with the smallest ticket number
        above current_number, the same set list_waiting shows.

        Returns:
            CalledTicket: The entry now being served, or None when nobody is
            waiting (current_number is left untouched).

        Raises:
            QueueNotFound: If the queue does not exist.
            QueueBusy: If every attempt lost a race against another writer.
        """
        for attempt in range(1, self.advance_retry_limit + 1):
            queue = self.store.get_queue(queue_id)
            entry = self.store.next_waiting_entry(queue_id, queue.current_number)
            if entry is None:
                logger.info(f"queue {queue_id} is empty at #{queue.current_number}")
                return None
            try:
                called = self.store.commit_advance(queue, entry, self.clock())
            except QueueConflict:
                logger.debug(f"advance on queue {queue_id} lost a race at version {queue.version}, attempt {attempt}")
                continue
            logger.info(f"queue {queue_id} now serving #{called.ticket_number} ({called.user_id})")
            return CalledTicket(
                queue_id=queue_id,
                entry_id=called.id,
                ticket_number=called.ticket_number,
                user_id=called.user_id,
                user_name=called.user_name,
            )

        logger.error(f"advance on queue {queue_id} failed after {self.advance_retry_limit} attempts")
        raise QueueBusy(queue_id, self.advance_retry_limit)

    def cancel_entry(self, queue_id: int, entry_id: int, user_id: str) -> EntryRecord:
        """
        Leave a queue. The ticket number is not given back.

        Raises:
            QueueNotFound: If the queue does not exist.
            EntryNotFound: If the entry is not the user's entry in this queue.
            InvalidEntryState: If the entry is no longer waiting.
            QueueBusy: If every attempt lost a race against another writer.
        """
        for attempt in range(1, self.advance_retry_limit + 1):
            queue = self.store.get_queue(queue_id)
            entry = self.store.get_entry(entry_id)
            if entry.queue_id != queue_id or entry.user_id != user_id:
                raise EntryNotFound(entry_id)
            if not entry.is_waiting:
                raise InvalidEntryState(entry_id, entry.status)
            try:
                cancelled = self.store.commit_cancel(queue, entry, self.clock())
            except QueueConflict:
                logger.debug(f"cancel of entry {entry_id} lost a race at version {queue.version}, attempt {attempt}")
                continue
            logger.info(f"user {user_id} left queue {queue_id}, ticket #{cancelled.ticket_number} cancelled")
            return cancelled

        logger.error(f"cancel of entry {entry_id} failed after {self.advance_retry_limit} attempts")
        raise QueueBusy(queue_id, self.advance_retry_limit)


def get_store(db: Session = Depends(get_db)) -> QueueStore:
    return SqlQueueStore(db)


def get_coordinator(store: QueueStore = Depends(get_store)) -> QueueCoordinator:
    return QueueCoordinator(store)
