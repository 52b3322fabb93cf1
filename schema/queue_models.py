from pydantic import BaseModel, Field
from typing import Annotated

WaitMinutes = Annotated[int, Field(strict=True, ge=0, le=24 * 60)]

class CreateQueueRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=100)]
    description: Annotated[str, Field(max_length=500)] = ""
    average_wait_time: WaitMinutes = 0

class QueueResponse(BaseModel):
    id: int
    name: str
    description: str
    last_ticket_number: int
    current_number: int
    total_in_queue: int
    average_wait_time: int

class JoinResponse(BaseModel):
    queue_id: int
    entry_id: int
    ticket_number: int

class CalledTicketResponse(BaseModel):
    queue_id: int
    entry_id: int
    ticket_number: int
    user_id: str
    user_name: str

class CancelResponse(BaseModel):
    queue_id: int
    entry_id: int
    ticket_number: int
    status: str
