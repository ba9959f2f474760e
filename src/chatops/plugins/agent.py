"""Per-invocation result collector handed to plugin handlers."""

from typing import Dict, Optional


class PluginAgent:
    """Collects the side-channel outcome of one plugin handler invocation.

    A fresh agent is created for every (plugin, event) pairing and is owned
    exclusively by that invocation. It is intentionally not thread-safe.

    Attributes:
        _outputs: Named string outputs set by the handler.
        _action_taken: One-way flag, set once the handler acted.
        _failure_message: Most recent failure message, if any.
    """

    def __init__(self) -> None:
        self._outputs: Dict[str, str] = {}
        self._action_taken = False
        self._failure_message: Optional[str] = None

    def set_output(self, name: str, value: str) -> None:
        self._outputs[name] = value

    def took_action(self) -> None:
        self._action_taken = True

    def set_failed(self, message: str) -> None:
        """Record a failure message; the last call wins.

        Does not raise and does not stop the handler. The handler still
        returns its own HandlerResult.
        """
        self._failure_message = message

    def get_outputs(self) -> Dict[str, str]:
        """Return a copy of the outputs recorded so far."""
        return dict(self._outputs)

    def did_take_action(self) -> bool:
        return self._action_taken

    def has_failed(self) -> bool:
        return self._failure_message is not None

    def get_failure_message(self) -> Optional[str]:
        return self._failure_message
