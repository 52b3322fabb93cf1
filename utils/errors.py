"""Queue domain errors.

Each error carries the StatusCode the HTTP layer answers with. QueueConflict
and AdvanceConflict are raised by the stores when a compare-and-swap on the
queue version loses; the coordinator retries them and never lets them out.
"""
from status import StatusCode


class QueueError(Exception):
    status = StatusCode.INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueueNotFound(QueueError):
    status = StatusCode.NOT_FOUND

    def __init__(self, queue_id):
        super().__init__(f"Queue {queue_id} not found")
        self.queue_id = queue_id


class EntryNotFound(QueueError):
    status = StatusCode.NOT_FOUND

    def __init__(self, entry_id):
        super().__init__(f"Queue entry {entry_id} not found")
        self.entry_id = entry_id


class AlreadyInQueue(QueueError):
    status = StatusCode.CONFLICT

    def __init__(self, queue_id, user_id, ticket_number):
        super().__init__(f"User {user_id} is already waiting in queue {queue_id} with ticket #{ticket_number}")
        self.queue_id = queue_id
        self.user_id = user_id
        self.ticket_number = ticket_number


class QueueNameTaken(QueueError):
    status = StatusCode.CONFLICT

    def __init__(self, name):
        super().__init__(f"A queue named {name!r} already exists")
        self.name = name


class InvalidEntryState(QueueError):
    status = StatusCode.CONFLICT

    def __init__(self, entry_id, status):
        super().__init__(f"Queue entry {entry_id} is {status.value}, only waiting entries can change")
        self.entry_id = entry_id
        self.entry_status = status


class JoinFailed(QueueError):
    status = StatusCode.SERVICE_UNAVAILABLE

    def __init__(self, queue_id, attempts):
        super().__init__(f"Could not join queue {queue_id} after {attempts} attempts, try again")
        self.queue_id = queue_id
        self.attempts = attempts


class QueueBusy(QueueError):
    status = StatusCode.SERVICE_UNAVAILABLE

    def __init__(self, queue_id, attempts):
        super().__init__(f"Queue {queue_id} kept changing during {attempts} attempts, try again")
        self.queue_id = queue_id
        self.attempts = attempts


class QueueConflict(QueueError):
    status = StatusCode.CONFLICT

    def __init__(self, queue_id, version):
        super().__init__(f"Queue {queue_id} changed since version {version}")
        self.queue_id = queue_id
        self.version = version


class AdvanceConflict(QueueConflict):
    pass
