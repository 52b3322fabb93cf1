import itertools
import logging
import threading
from database.models import EntryStatus
from database.store import QueueStore
from schema.records import QueueRecord, EntryRecord
from utils.errors import (
    QueueNotFound,
    EntryNotFound,
    QueueNameTaken,
    QueueConflict,
    AdvanceConflict,
)

logger = logging.getLogger(__name__)


def _replace(record, **changes):
    # rebuild instead of model_copy so the record invariants are checked again
    return type(record).model_validate({**record.model_dump(), **changes})


class InMemoryQueueStore(QueueStore):
    """
    Dict-backed store. Reads and commits hold one lock; the version check inside
    each commit gives the same lost-race behaviour as SqlQueueStore.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._queues: dict[int, QueueRecord] = {}
        self._entries: dict[int, EntryRecord] = {}
        self._queue_ids = itertools.count(1)
        self._entry_ids = itertools.count(1)

    def _queue(self, queue_id):
        try:
            return self._queues[queue_id]
        except KeyError:
            raise QueueNotFound(queue_id) from None

    def _check_version(self, queue: QueueRecord, conflict):
        if self._queue(queue.id).version != queue.version:
            raise conflict(queue.id, queue.version)

    def _check_waiting(self, queue: QueueRecord, entry: EntryRecord, conflict):
        if not self._entries[entry.id].is_waiting:
            raise conflict(queue.id, queue.version)

    def _waiting(self, queue_id, after_ticket):
        return sorted(
            (
                e for e in self._entries.values()
                if e.queue_id == queue_id and e.is_waiting and e.ticket_number > after_ticket
            ),
            key=lambda e: e.ticket_number,
        )

    def create_queue(self, name, description="", average_wait_time=0):
        with self._lock:
            if any(q.name == name for q in self._queues.values()):
                raise QueueNameTaken(name)
            queue = QueueRecord(
                id=next(self._queue_ids),
                name=name,
                description=description,
                last_ticket_number=0,
                current_number=0,
                total_in_queue=0,
                average_wait_time=average_wait_time,
                version=0,
            )
            self._queues[queue.id] = queue
        logger.info(f"created queue {queue.id} ({queue.name})")
        return queue

    def get_queue(self, queue_id):
        with self._lock:
            return self._queue(queue_id)

    def list_queues(self):
        with self._lock:
            return sorted(self._queues.values(), key=lambda q: q.name)

    def get_entry(self, entry_id):
        with self._lock:
            try:
                return self._entries[entry_id]
            except KeyError:
                raise EntryNotFound(entry_id) from None

    def find_waiting_entry(self, queue_id, user_id):
        with self._lock:
            for entry in self._waiting(queue_id, 0):
                if entry.user_id == user_id:
                    return entry
        return None

    def next_waiting_entry(self, queue_id, after_ticket):
        with self._lock:
            waiting = self._waiting(queue_id, after_ticket)
        return waiting[0] if waiting else None

    def waiting_entries(self, queue_id, after_ticket):
        with self._lock:
            return self._waiting(queue_id, after_ticket)

    def waiting_entries_for_user(self, user_id):
        with self._lock:
            pairs = [
                (e, self._queues[e.queue_id]) for e in self._entries.values()
                if e.user_id == user_id and e.is_waiting
            ]
        return sorted(pairs, key=lambda p: (p[1].name, p[0].ticket_number))

    def entries_for_user(self, user_id):
        with self._lock:
            pairs = [(e, self._queues[e.queue_id]) for e in self._entries.values() if e.user_id == user_id]
        return sorted(pairs, key=lambda p: (p[0].entry_time, p[0].id), reverse=True)

    def commit_join(self, issued, user_id, user_name, now):
        queue = issued.queue
        with self._lock:
            self._check_version(queue, QueueConflict)
            entry = EntryRecord(
                id=next(self._entry_ids),
                queue_id=queue.id,
                user_id=user_id,
                user_name=user_name,
                ticket_number=issued.ticket_number,
                status=EntryStatus.WAITING,
                entry_time=now,
            )
            self._queues[queue.id] = _replace(
                queue,
                last_ticket_number=issued.ticket_number,
                total_in_queue=queue.total_in_queue + 1,
                version=queue.version + 1,
            )
            self._entries[entry.id] = entry
        return entry

    def commit_advance(self, queue, entry, now):
        with self._lock:
            self._check_version(queue, AdvanceConflict)
            self._check_waiting(queue, entry, AdvanceConflict)
            updated = _replace(
                queue,
                current_number=entry.ticket_number,
                total_in_queue=max(0, queue.total_in_queue - 1),
                version=queue.version + 1,
            )
            for other in list(self._entries.values()):
                if other.queue_id == queue.id and other.status == EntryStatus.SERVING:
                    self._entries[other.id] = _replace(other, status=EntryStatus.SERVED, finished_time=now)
            called = _replace(self._entries[entry.id], status=EntryStatus.SERVING, called_time=now)
            self._queues[queue.id] = updated
            self._entries[entry.id] = called
        return called

    def commit_cancel(self, queue, entry, now):
        with self._lock:
            self._check_version(queue, QueueConflict)
            self._check_waiting(queue, entry, QueueConflict)
            updated = _replace(
                queue,
                total_in_queue=max(0, queue.total_in_queue - 1),
                version=queue.version + 1,
            )
            cancelled = _replace(self._entries[entry.id], status=EntryStatus.CANCELLED, finished_time=now)
            self._queues[queue.id] = updated
            self._entries[entry.id] = cancelled
        return cancelled