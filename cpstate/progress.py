"""Progress reporting for long running import steps.

Each step emits a start event, any number of update events with
human readable counts, and ends with a success or fail event.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
import logging
import sys
from types import TracebackType
from typing import TextIO

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "StepEvent",
    "Printer",
    "Step",
    "LoggingPrinter",
    "ConsolePrinter",
]

STEP_FAILED = "Failed!"


class StepEvent(StrEnum):
    """Events emitted while a step runs."""

    START = "start"
    UPDATE = "update"
    SUCCESS = "success"
    FAIL = "fail"


class Printer(ABC):
    """Receives progress events."""

    @abstractmethod
    def emit(self, event: StepEvent, text: str) -> None:
        """Handle a single progress event."""

    def start(self, message: str) -> "Step":
        """Start a new step."""
        self.emit(StepEvent.START, message)
        return Step(self, message)


class Step:
    """A running step.

    When used as a context manager, a step left with an exception that was
    not already marked as done reports a failure.
    """

    def __init__(self, printer: Printer, message: str) -> None:
        self._printer = printer
        self._message = message
        self._done = False

    def update(self, text: str) -> None:
        """Report intermediate progress."""
        self._printer.emit(StepEvent.UPDATE, text)

    def success(self, text: str) -> None:
        """Report that the step completed."""
        self._done = True
        self._printer.emit(StepEvent.SUCCESS, self._message + text)

    def fail(self) -> None:
        """Report that the step failed."""
        self._done = True
        self._printer.emit(StepEvent.FAIL, self._message + STEP_FAILED)

    def __enter__(self) -> "Step":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and not self._done:
            self.fail()


class LoggingPrinter(Printer):
    """A printer that sends progress to the log."""

    def emit(self, event: StepEvent, text: str) -> None:
        """Log the progress event."""
        if event == StepEvent.FAIL:
            _LOGGER.error(text)
        elif event == StepEvent.UPDATE:
            _LOGGER.debug(text)
        else:
            _LOGGER.info(text)


class ConsolePrinter(Printer):
    """A printer that writes human readable progress lines."""

    PREFIXES = {
        StepEvent.START: "",
        StepEvent.UPDATE: "  ",
        StepEvent.SUCCESS: "[OK] ",
        StepEvent.FAIL: "[FAIL] ",
    }

    def __init__(self, file: TextIO | None = None, verbose: bool = False) -> None:
        """Initialize the ConsolePrinter, optionally echoing update events."""
        self._file = file
        self._verbose = verbose

    def emit(self, event: StepEvent, text: str) -> None:
        """Print the progress event."""
        if event in (StepEvent.START, StepEvent.UPDATE) and not self._verbose:
            return
        print(f"{self.PREFIXES[event]}{text}", file=self._file or sys.stderr)
