"""Output channel for step outputs and invocation failure.

The dispatcher reports its summary (event name, correlation id,
repository, enabled plugins) as named step outputs, and a fatal error as
the failure of the whole invocation. The abstract OutputWriter keeps the
dispatcher independent of where those values end up:

- GitHubOutputWriter: Appends outputs to the GITHUB_OUTPUT file and
  prints the ``::error::`` workflow command on failure
- MemoryOutputWriter: Keeps everything in memory (tests, local runs)
"""

import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import structlog

logger = structlog.get_logger()


class OutputWriter(ABC):
    """Abstract sink for step outputs and the invocation failure."""

    def __init__(self) -> None:
        self._failure_message: Optional[str] = None

    @abstractmethod
    def set_output(self, name: str, value: str) -> None:
        """Publish a named string output."""

    def set_failed(self, message: str) -> None:
        """Mark the invocation as failed.

        Args:
            message: Human-readable failure reason.
        """
        self._failure_message = message

    @property
    def failed(self) -> bool:
        return self._failure_message is not None

    @property
    def failure_message(self) -> Optional[str]:
        return self._failure_message


class MemoryOutputWriter(OutputWriter):
    """Output writer that keeps outputs in a dict."""

    def __init__(self) -> None:
        super().__init__()
        self.outputs: Dict[str, str] = {}

    def set_output(self, name: str, value: str) -> None:
        self.outputs[name] = value


class GitHubOutputWriter(OutputWriter):
    """Output writer speaking the GitHub Actions file protocol.

    Outputs are appended to the file named by GITHUB_OUTPUT. When no file
    is configured, outputs are only logged.

    Attributes:
        output_path: Path of the step output file, if any.
    """

    def __init__(self, output_path: Optional[str] = None):
        super().__init__()
        self.output_path = Path(output_path) if output_path else None

    def set_output(self, name: str, value: str) -> None:
        """Append ``name=value`` to the output file.

        Multi-line values use the heredoc form with a random delimiter.
        """
        logger.debug("Setting output", name=name, value=value)
        if self.output_path is None:
            return

        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            entry = f"{name}<<{delimiter}\n{value}\n{delimiter}\n"
        else:
            entry = f"{name}={value}\n"

        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(entry)

    def set_failed(self, message: str) -> None:
        super().set_failed(message)
        escaped = (
            message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        )
        print(f"::error::{escaped}", flush=True)
