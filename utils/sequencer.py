from database.store import QueueStore
from schema.records import IssuedTicket


class TicketSequencer:
    """
    Hands out the next ticket number of a queue.

    The number is computed from a fresh snapshot and only becomes real when
    QueueStore.commit_join lands against that snapshot's version. A number
    whose commit lost the race is simply never seen by anyone, so committed
    tickets stay gap-free apart from cancellations, which are not reclaimed.
    """

    def __init__(self, store: QueueStore):
        self.store = store

    def next_ticket(self, queue_id: int) -> IssuedTicket:
        queue = self.store.get_queue(queue_id)
        return IssuedTicket(queue=queue, ticket_number=queue.last_ticket_number + 1)
