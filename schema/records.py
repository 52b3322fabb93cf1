from datetime import datetime
from typing import Annotated, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from database.models import EntryStatus

NonNegativeInt = Annotated[int, Field(ge=0)]


class QueueRecord(BaseModel):
    """Snapshot of a queue's counters as read from the store."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    name: str
    description: str = ""
    last_ticket_number: NonNegativeInt
    current_number: NonNegativeInt
    total_in_queue: NonNegativeInt
    average_wait_time: NonNegativeInt
    version: NonNegativeInt

    @model_validator(mode="after")
    def check_counters(self):
        if self.current_number > self.last_ticket_number:
            raise ValueError(
                f"current_number {self.current_number} is past last_ticket_number {self.last_ticket_number}"
            )
        if self.total_in_queue > self.last_ticket_number:
            raise ValueError(
                f"total_in_queue {self.total_in_queue} exceeds tickets issued {self.last_ticket_number}"
            )
        return self


class EntryRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    queue_id: int
    user_id: str
    user_name: str
    ticket_number: int = Field(ge=1)
    status: EntryStatus
    entry_time: datetime
    called_time: Optional[datetime] = None
    finished_time: Optional[datetime] = None

    @property
    def is_waiting(self) -> bool:
        return self.status == EntryStatus.WAITING


class IssuedTicket(BaseModel):
    """A ticket number computed from a queue snapshot, not yet committed."""

    model_config = ConfigDict(frozen=True)

    queue: QueueRecord
    ticket_number: int = Field(ge=1)

    @model_validator(mode="after")
    def check_follows_snapshot(self):
        if self.ticket_number != self.queue.last_ticket_number + 1:
            raise ValueError(
                f"ticket {self.ticket_number} does not follow last issued {self.queue.last_ticket_number}"
            )
        return self
