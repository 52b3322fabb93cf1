"""Read-only projections over the queue store. Nothing here writes."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from database.models import EntryStatus
from database.store import QueueStore


class MyTicket(BaseModel):
    queue_id: int
    queue_name: str
    entry_id: int
    ticket_number: int
    current_number: int
    people_ahead: int


class WaitingEntry(BaseModel):
    entry_id: int
    ticket_number: int
    user_name: str
    entry_time: datetime


class HistoryEntry(BaseModel):
    queue_id: int
    queue_name: str
    entry_id: int
    ticket_number: int
    status: EntryStatus
    entry_time: datetime
    called_time: Optional[datetime] = None
    finished_time: Optional[datetime] = None


class QueueListing(BaseModel):
    id: int
    name: str
    description: str
    current_number: int
    total_in_queue: int
    average_wait_time: int
    joined: bool


def people_ahead(ticket_number: int, current_number: int) -> int:
    return max(0, ticket_number - current_number - 1)


def list_my_tickets(store: QueueStore, user_id: str) -> list[MyTicket]:
    return [
        MyTicket(
            queue_id=queue.id,
            queue_name=queue.name,
            entry_id=entry.id,
            ticket_number=entry.ticket_number,
            current_number=queue.current_number,
            people_ahead=people_ahead(entry.ticket_number, queue.current_number),
        )
        for entry, queue in store.waiting_entries_for_user(user_id)
    ]


def list_waiting(store: QueueStore, queue_id: int) -> list[WaitingEntry]:
    """
    Waiting entries of a queue in calling order.

    Uses the same filter and ordering the advance operation picks from, so the
    first row is always the ticket the next call will serve.
    """
    queue = store.get_queue(queue_id)
    return [
        WaitingEntry(
            entry_id=entry.id,
            ticket_number=entry.ticket_number,
            user_name=entry.user_name,
            entry_time=entry.entry_time,
        )
        for entry in store.waiting_entries(queue_id, queue.current_number)
    ]


def ticket_history(store: QueueStore, user_id: str) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            queue_id=queue.id,
            queue_name=queue.name,
            entry_id=entry.id,
            ticket_number=entry.ticket_number,
            status=entry.status,
            entry_time=entry.entry_time,
            called_time=entry.called_time,
            finished_time=entry.finished_time,
        )
        for entry, queue in store.entries_for_user(user_id)
    ]


def list_queues(store: QueueStore, user_id: Optional[str] = None) -> list[QueueListing]:
    joined = set()
    if user_id is not None:
        joined = {queue.id for _, queue in store.waiting_entries_for_user(user_id)}
    return [
        QueueListing(
            id=queue.id,
            name=queue.name,
            description=queue.description,
            current_number=queue.current_number,
            total_in_queue=queue.total_in_queue,
            average_wait_time=queue.average_wait_time,
            joined=queue.id in joined,
        )
        for queue in store.list_queues()
    ]
