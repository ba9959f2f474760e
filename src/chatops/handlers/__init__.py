"""Fan-out engine running plugin handlers for a dispatched event."""

from chatops.handlers.fanout import EventHandlers

__all__ = ["EventHandlers"]
