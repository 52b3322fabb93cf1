from fastapi import APIRouter, Depends, HTTPException
import logging
from auth import CurrentUser, get_current_user
from database.store import QueueStore
from schema.queue_models import JoinResponse, CancelResponse
from status import StatusCode, StatusResponse
from utils.coordinator import QueueCoordinator, get_coordinator, get_store
from utils.errors import QueueError
from utils.global_settings import setup_logging
from utils.views import list_my_tickets, ticket_history

setup_logging()
logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/user",
    tags=["user"]
)

@router.post("/queues/{queue_id}/join", response_model=StatusResponse)
async def join_queue(
    queue_id: int,
    user: CurrentUser = Depends(get_current_user),
    coordinator: QueueCoordinator = Depends(get_coordinator),
):
    """
    Take a ticket in a queue.

    The ticket number is the queue's last issued number plus one, committed
    together with the waiting entry.

    Args:
        queue_id (int): The queue to join.

    Returns:
        StatusResponse: The new ticket number and entry id.

    Raises:
        HTTPException:
            - If the queue does not exist (404).
            - If the caller is already waiting in this queue (409).
            - If the join kept colliding with other joins (503), safe to retry.
    """
    try:
        ticket = coordinator.join_queue(queue_id, user.user_id, user.user_name)
    except QueueError as e:
        logger.debug(f"join_queue failed for {user.user_id}: {e.message}")
        raise HTTPException(status_code=e.status.value, detail=e.message)

    return StatusResponse(
        status_code=StatusCode.CREATED.value,
        status_message=StatusCode.CREATED.message,
        data=JoinResponse(queue_id=ticket.queue_id, entry_id=ticket.entry_id, ticket_number=ticket.ticket_number),
    )

@router.post("/queues/{queue_id}/entries/{entry_id}/cancel", response_model=StatusResponse)
async def cancel_entry(
    queue_id: int,
    entry_id: int,
    user: CurrentUser = Depends(get_current_user),
    coordinator: QueueCoordinator = Depends(get_coordinator),
):
    """
    Leave a queue voluntarily.

    Raises:
        HTTPException:
            - If the queue or the caller's entry does not exist (404).
            - If the entry was already called or cancelled (409).
    """
    try:
        entry = coordinator.cancel_entry(queue_id, entry_id, user.user_id)
    except QueueError as e:
        logger.debug(f"cancel_entry failed for {user.user_id}: {e.message}")
        raise HTTPException(status_code=e.status.value, detail=e.message)

    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=CancelResponse(
            queue_id=entry.queue_id,
            entry_id=entry.id,
            ticket_number=entry.ticket_number,
            status=entry.status.value,
        ),
    )

@router.get("/tickets", response_model=StatusResponse)
async def my_tickets(user: CurrentUser = Depends(get_current_user), store: QueueStore = Depends(get_store)):
    """
    The caller's waiting tickets with the number being served and how many people are ahead.
    """
    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=list_my_tickets(store, user.user_id),
    )

@router.get("/history", response_model=StatusResponse)
async def my_history(user: CurrentUser = Depends(get_current_user), store: QueueStore = Depends(get_store)):
    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=ticket_history(store, user.user_id),
    )
