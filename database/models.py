import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from database.db import Base


def utcnow():
    return datetime.now(timezone.utc)


class EntryStatus(str, enum.Enum):
    WAITING = "waiting"
    SERVING = "serving"
    SERVED = "served"
    CANCELLED = "cancelled"


class Queue(Base):

    """
        Represents a service line operated by an organization.
        Attributes:
            id (int): Primary key.
            name (str): Unique queue name.
            description (str): Free text shown to users.
            last_ticket_number (int): Highest ticket ever issued, never decreases.
            current_number (int): Ticket most recently called, 0 if none.
            total_in_queue (int): Number of waiting entries.
            average_wait_time (int): Informational estimate in minutes.
            version (int): Bumped on every counter write, used for compare-and-swap.
   """

    __tablename__ = "queues"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(500), nullable=False, default="")
    last_ticket_number = Column(Integer, nullable=False, default=0)
    current_number = Column(Integer, nullable=False, default=0)
    total_in_queue = Column(Integer, nullable=False, default=0)
    average_wait_time = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    entries = relationship("QueueEntry", back_populates="queue")


class QueueEntry(Base):
    """
    Represents one user's ticket in one queue.
    Attributes:
        id (int): Primary key.
        queue_id (int): Foreign key to Queue.
        user_id (str): Subject of the caller's access token.
        user_name (str): Display name captured at join time.
        ticket_number (int): Unique within the queue, assigned once.
        status (EntryStatus): waiting, serving, served or cancelled.
        entry_time (datetime): When the ticket was issued.
        called_time (datetime): When the queue advanced to this ticket.
        finished_time (datetime): When the entry was served or cancelled.
    """

    __tablename__ = "queue_entries"
    __table_args__ = (
        UniqueConstraint("queue_id", "ticket_number", name="uq_queue_ticket"),
    )
    id = Column(Integer, primary_key=True, index=True)
    queue_id = Column(Integer, ForeignKey('queues.id'), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    user_name = Column(String(100), nullable=False, default="Anonymous")
    ticket_number = Column(Integer, nullable=False)
    status = Column(Enum(EntryStatus), nullable=False, default=EntryStatus.WAITING, index=True)
    entry_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    called_time = Column(DateTime(timezone=True), nullable=True)
    finished_time = Column(DateTime(timezone=True), nullable=True)

    queue = relationship("Queue", back_populates="entries")
