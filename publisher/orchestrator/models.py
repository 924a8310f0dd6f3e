"""Orchestrator data models."""
from enum import Enum
from typing import Callable, Optional


class PublishState(Enum):
    """States of the ticket -> upload -> confirm protocol."""
    START = "start"
    TICKET_REQUESTED = "ticket_requested"
    ARCHIVE_READY = "archive_ready"
    UPLOADED = "uploaded"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PublishState.CONFIRMED, PublishState.FAILED)


StateCallback = Optional[Callable[[PublishState], None]]
