# chronovault/errors.py
import logging
from dataclasses import dataclass
from typing import Optional, Protocol


class ChronoVaultError(Exception):
    """Base class for every failure the seal services can report."""

    message = "Operation failed"

    def __init__(self, message: Optional[str] = None, *, cause: Optional[BaseException] = None):
        super().__init__(message or self.message)
        self.cause = cause


class NotConnected(ChronoVaultError):
    message = "Please connect a wallet first"


class WrongNetwork(ChronoVaultError):
    message = "Connected to the wrong network"


class SubmissionFailed(ChronoVaultError):
    message = "Failed to create the seal"


class DecodeError(ChronoVaultError):
    """Malformed wire payload. Recovered locally by skipping the record."""

    message = "Malformed seal payload"


class NotFound(ChronoVaultError):
    message = "Seal not found"


class MediaResolutionFailed(ChronoVaultError):
    message = "Media file not available"

    def __init__(self, media_id: str, message: Optional[str] = None, *, cause=None):
        super().__init__(message or f"{self.message}: {media_id}", cause=cause)
        self.media_id = media_id


class InvalidFile(ChronoVaultError):
    message = "File rejected"

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or self.message)
        self.errors = errors


@dataclass(frozen=True)
class Notice:
    level: str  # "success" | "info" | "error"
    message: str
    error: Optional[ChronoVaultError] = None


class Notifier(Protocol):
    def __call__(self, notice: Notice) -> None: ...


class LoggingNotifier:
    """Default notifier: user-facing notices end up in the service log."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.log = logger or logging.getLogger("chronovault.notices")

    def __call__(self, notice: Notice) -> None:
        if notice.level == "error":
            cause = notice.error.cause if notice.error is not None else None
            self.log.warning("%s (%s)", notice.message, cause or notice.error)
        else:
            self.log.info(notice.message)


class CollectingNotifier:
    """Keeps notices in memory, e.g. to return them alongside an API response."""

    def __init__(self, forward: Optional[Notifier] = None):
        self.notices: list[Notice] = []
        self.forward = forward

    def __call__(self, notice: Notice) -> None:
        self.notices.append(notice)
        if self.forward is not None:
            self.forward(notice)

    @property
    def errors(self) -> list[Notice]:
        return [n for n in self.notices if n.level == "error"]


def fail(notify: Notifier, error: ChronoVaultError) -> None:
    notify(Notice("error", str(error), error))


def succeed(notify: Notifier, message: str) -> None:
    notify(Notice("success", message))
