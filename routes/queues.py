from fastapi import APIRouter, Depends, HTTPException
import logging
from auth import CurrentUser, get_current_user, require_operator
from database.store import QueueStore
from schema.queue_models import CreateQueueRequest, QueueResponse
from status import StatusCode, StatusResponse
from utils.coordinator import QueueCoordinator, get_coordinator, get_store
from utils.errors import QueueError
from utils.global_settings import setup_logging
from utils.views import list_queues

setup_logging()
logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/queues",
    tags=["queues"]
)

@router.post("", response_model=StatusResponse)
async def add_queue(
    request: CreateQueueRequest,
    operator: CurrentUser = Depends(require_operator),
    coordinator: QueueCoordinator = Depends(get_coordinator),
):
    """
    Create a new queue.

    Args:
        request (CreateQueueRequest): Name, description and the informational average wait.

    Returns:
        StatusResponse: The created queue with all counters at 0.

    Raises:
        HTTPException: If a queue with the same name already exists (409).
    """
    try:
        queue = coordinator.create_queue(request.name, request.description, request.average_wait_time)
    except QueueError as e:
        logger.debug(f"add_queue failed: {e.message}")
        raise HTTPException(status_code=e.status.value, detail=e.message)

    logger.info(f"operator {operator.user_id} created queue {queue.id}")
    return StatusResponse(
        status_code=StatusCode.CREATED.value,
        status_message=StatusCode.CREATED.message,
        data=QueueResponse(**queue.model_dump(exclude={"version"})),
    )

@router.get("", response_model=StatusResponse)
async def get_queues(user: CurrentUser = Depends(get_current_user), store: QueueStore = Depends(get_store)):
    """
    List every queue ordered by name, flagging the ones the caller is waiting in.
    """
    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=list_queues(store, user.user_id),
    )

@router.get("/{queue_id}", response_model=StatusResponse)
async def get_queue(queue_id: int, user: CurrentUser = Depends(get_current_user), store: QueueStore = Depends(get_store)):
    """
    Retrieve the public counters of one queue.

    Raises:
        HTTPException: If the queue does not exist (404).
    """
    try:
        queue = store.get_queue(queue_id)
    except QueueError as e:
        raise HTTPException(status_code=e.status.value, detail=e.message)
    return StatusResponse(
        status_code=StatusCode.OK.value,
        status_message=StatusCode.OK.message,
        data=QueueResponse(**queue.model_dump(exclude={"version"})),
    )
