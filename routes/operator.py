from fastapi import APIRouter, Depends, HTTPException
import logging
from auth import CurrentUser, require_operator
from database.store import QueueStore
from schema.queue_models import CalledTicketResponse
from status import QUEUE_EMPTY_MESSAGE, StatusCode, StatusResponse
from utils.coordinator import QueueCoordinator, get_coordinator, get_store
from utils.errors import QueueError
from utils.global_settings import setup_logging
from utils.views import list_waiting

setup_logging()
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/operator",
    tags=["operator"]
)

@router.get("/queues/{queue_id}/waiting", response_model=StatusResponse)
async def get_waiting(
    queue_id: int,
    operator: CurrentUser = Depends(require_operator),
    store: QueueStore = Depends(get_store),
):
    """
    Retrieve the waiting list of a queue.

    Entries come in the order "call next" serves them, ascending by ticket number.

    Raises:
        HTTPException:
            - If the queue does not exist (404).
    """
    try:
        waiting = list_waiting(store, queue_id)
    except QueueError as e:
        raise HTTPException(status_code=e.status.value, detail=e.message)
    return StatusResponse(status_code=StatusCode.OK.value, status_message=StatusCode.OK.message, data=waiting)

@router.post("/queues/{queue_id}/next", response_model=StatusResponse)
async def call_next(
    queue_id: int,
    operator: CurrentUser = Depends(require_operator),
    coordinator: QueueCoordinator = Depends(get_coordinator),
):
    """
    Call the next ticket of a queue.

    Args:
        queue_id (int): The queue to advance.

    Returns:
        StatusResponse: The called ticket and its holder, or data=None with
        status_message "Queue Empty" when nobody is waiting.

    Raises:
        HTTPException:
            - If the queue does not exist (404).
            - If the queue kept changing under the call (503), safe to retry.
    """
    try:
        called = coordinator.advance_queue(queue_id)
    except QueueError as e:
        logger.debug(f"call_next failed on queue {queue_id}: {e.message}")
        raise HTTPException(status_code=e.status.value, detail=e.message)

    if called is None:
        return StatusResponse(status_code=StatusCode.OK.value, status_message=QUEUE_EMPTY_MESSAGE)

    logger.info(f"operator {operator.user_id} called #{called.ticket_number} on queue {queue_id}")
    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=CalledTicketResponse(
            queue_id=called.queue_id,
            entry_id=called.entry_id,
            ticket_number=called.ticket_number,
            user_id=called.user_id,
            user_name=called.user_name,
        ),
    )
