"""
Queue state store.

QueueStore is the repository the coordinator and the ticket views talk to.
Every write that touches a queue's counters is a compare-and-swap on
Queue.version: the caller hands back the snapshot it read, and the write only
lands if nobody else has committed against that queue in between. A lost race
raises QueueConflict (AdvanceConflict for calls) and nothing is persisted.
"""
import abc
import logging
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from database.models import Queue, QueueEntry, EntryStatus
from schema.records import QueueRecord, EntryRecord, IssuedTicket
from utils.errors import (
    QueueNotFound,
    EntryNotFound,
    QueueNameTaken,
    QueueConflict,
    AdvanceConflict,
)
from utils.global_settings import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


class QueueStore(abc.ABC):

    @abc.abstractmethod
    def create_queue(self, name: str, description: str = "", average_wait_time: int = 0) -> QueueRecord:
        ...

    @abc.abstractmethod
    def get_queue(self, queue_id: int) -> QueueRecord:
        """Fresh snapshot of the queue, raises QueueNotFound."""

    @abc.abstractmethod
    def list_queues(self) -> list[QueueRecord]:
        """All queues ordered by name."""

    @abc.abstractmethod
    def get_entry(self, entry_id: int) -> EntryRecord:
        """Raises EntryNotFound."""

    @abc.abstractmethod
    def find_waiting_entry(self, queue_id: int, user_id: str) -> EntryRecord | None:
        ...

    @abc.abstractmethod
    def next_waiting_entry(self, queue_id: int, after_ticket: int) -> EntryRecord | None:
        """Waiting entry with the smallest ticket number above after_ticket."""

    @abc.abstractmethod
    def waiting_entries(self, queue_id: int, after_ticket: int) -> list[EntryRecord]:
        """Every waiting entry above after_ticket, ascending by ticket number."""

    @abc.abstractmethod
    def waiting_entries_for_user(self, user_id: str) -> list[tuple[EntryRecord, QueueRecord]]:
        ...

    @abc.abstractmethod
    def entries_for_user(self, user_id: str) -> list[tuple[EntryRecord, QueueRecord]]:
        """All of a user's entries in any status, newest first."""

    @abc.abstractmethod
    def commit_join(self, issued: IssuedTicket, user_id: str, user_name: str, now: datetime) -> EntryRecord:
        """
        Persist the issued ticket and its waiting entry in one unit.

        Raises:
            QueueConflict: the queue moved past issued.queue.version.
        """

    @abc.abstractmethod
    def commit_advance(self, queue: QueueRecord, entry: EntryRecord, now: datetime) -> EntryRecord:
        """
        Point current_number at entry, mark it serving and close the previous call.

        Raises:
            AdvanceConflict: the queue moved past queue.version or entry stopped waiting.
        """

    @abc.abstractmethod
    def commit_cancel(self, queue: QueueRecord, entry: EntryRecord, now: datetime) -> EntryRecord:
        """
        Raises:
            QueueConflict: the queue moved past queue.version or entry stopped waiting.
        """


class SqlQueueStore(QueueStore):
    """QueueStore over a SQLAlchemy session, one transaction per commit_* call."""

    def __init__(self, db: Session):
        self.db = db

    def _fresh(self, stmt):
        # reads must not be served from the identity map, other sessions commit too
        return self.db.execute(stmt.execution_options(populate_existing=True))

    def _waiting(self, queue_id, after_ticket):
        return (
            select(QueueEntry)
            .where(
                QueueEntry.queue_id == queue_id,
                QueueEntry.status == EntryStatus.WAITING,
                QueueEntry.ticket_number > after_ticket,
            )
            .order_by(QueueEntry.ticket_number.asc())
        )

    def _compare_and_swap(self, queue: QueueRecord, conflict, **values):
        result = self.db.execute(
            update(Queue)
            .where(Queue.id == queue.id, Queue.version == queue.version)
            .values(version=queue.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise conflict(queue.id, queue.version)

    def _move_entry(self, entry: EntryRecord, queue: QueueRecord, conflict, **values):
        result = self.db.execute(
            update(QueueEntry)
            .where(QueueEntry.id == entry.id, QueueEntry.status == EntryStatus.WAITING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise conflict(queue.id, queue.version)

    def create_queue(self, name, description="", average_wait_time=0):
        queue = Queue(
            name=name,
            description=description,
            average_wait_time=average_wait_time,
            last_ticket_number=0,
            current_number=0,
            total_in_queue=0,
            version=0,
        )
        self.db.add(queue)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise QueueNameTaken(name) from e
        self.db.refresh(queue)
        logger.info(f"created queue {queue.id} ({queue.name})")
        return QueueRecord.model_validate(queue)

    def get_queue(self, queue_id):
        row = self._fresh(select(Queue).where(Queue.id == queue_id)).scalar_one_or_none()
        if row is None:
            raise QueueNotFound(queue_id)
        return QueueRecord.model_validate(row)

    def list_queues(self):
        rows = self._fresh(select(Queue).order_by(Queue.name)).scalars().all()
        return [QueueRecord.model_validate(row) for row in rows]

    def get_entry(self, entry_id):
        row = self._fresh(select(QueueEntry).where(QueueEntry.id == entry_id)).scalar_one_or_none()
        if row is None:
            raise EntryNotFound(entry_id)
        return EntryRecord.model_validate(row)

    def find_waiting_entry(self, queue_id, user_id):
        row = self._fresh(
            select(QueueEntry)
            .where(
                QueueEntry.queue_id == queue_id,
                QueueEntry.user_id == user_id,
                QueueEntry.status == EntryStatus.WAITING,
            )
            .order_by(QueueEntry.ticket_number)
            .limit(1)
        ).scalar_one_or_none()
        return EntryRecord.model_validate(row) if row is not None else None

    def next_waiting_entry(self, queue_id, after_ticket):
        row = self._fresh(self._waiting(queue_id, after_ticket).limit(1)).scalar_one_or_none()
        return EntryRecord.model_validate(row) if row is not None else None

    def waiting_entries(self, queue_id, after_ticket):
        rows = self._fresh(self._waiting(queue_id, after_ticket)).scalars().all()
        return [EntryRecord.model_validate(row) for row in rows]

    def waiting_entries_for_user(self, user_id):
        rows = self._fresh(
            select(QueueEntry, Queue)
            .join(Queue, QueueEntry.queue_id == Queue.id)
            .where(QueueEntry.user_id == user_id, QueueEntry.status == EntryStatus.WAITING)
            .order_by(Queue.name, QueueEntry.ticket_number)
        ).all()
        return [(EntryRecord.model_validate(e), QueueRecord.model_validate(q)) for e, q in rows]

    def entries_for_user(self, user_id):
        rows = self._fresh(
            select(QueueEntry, Queue)
            .join(Queue, QueueEntry.queue_id == Queue.id)
            .where(QueueEntry.user_id == user_id)
            .order_by(QueueEntry.entry_time.desc(), QueueEntry.id.desc())
        ).all()
        return [(EntryRecord.model_validate(e), QueueRecord.model_validate(q)) for e, q in rows]

    def commit_join(self, issued, user_id, user_name, now):
        queue = issued.queue
        entry = QueueEntry(
            queue_id=queue.id,
            user_id=user_id,
            user_name=user_name,
            ticket_number=issued.ticket_number,
            status=EntryStatus.WAITING,
            entry_time=now,
        )
        try:
            self._compare_and_swap(
                queue,
                QueueConflict,
                last_ticket_number=issued.ticket_number,
                total_in_queue=queue.total_in_queue + 1,
            )
            self.db.add(entry)
            self.db.commit()
        except QueueConflict:
            self.db.rollback()
            raise
        except IntegrityError as e:
            # another writer already holds this ticket number
            self.db.rollback()
            raise QueueConflict(queue.id, queue.version) from e
        return EntryRecord.model_validate(entry)

    def commit_advance(self, queue, entry, now):
        try:
            self._compare_and_swap(
                queue,
                AdvanceConflict,
                current_number=entry.ticket_number,
                total_in_queue=max(0, queue.total_in_queue - 1),
            )
            # the previous call is done once the next ticket is called
            self.db.execute(
                update(QueueEntry)
                .where(QueueEntry.queue_id == queue.id, QueueEntry.status == EntryStatus.SERVING)
                .values(status=EntryStatus.SERVED, finished_time=now)
                .execution_options(synchronize_session=False)
            )
            self._move_entry(entry, queue, AdvanceConflict, status=EntryStatus.SERVING, called_time=now)
            self.db.commit()
        except AdvanceConflict:
            self.db.rollback()
            raise
        return self.get_entry(entry.id)

    def commit_cancel(self, queue, entry, now):
        try:
            self._compare_and_swap(
                queue,
                QueueConflict,
                total_in_queue=max(0, queue.total_in_queue - 1),
            )
            self._move_entry(entry, queue, QueueConflict, status=EntryStatus.CANCELLED, finished_time=now)
            self.db.commit()
        except QueueConflict:
            self.db.rollback()
            raise
        return self.get_entry(entry.id)
