"""
Retrying execution of remote I/O operations.

Remote file systems, and object stores pretending to be file systems in particular,
regularly fail calls that succeed when simply tried again: connections get reset,
reads time out, and freshly written objects are briefly invisible. Losing the node's
own data is worse than waiting for it, so internal I/O is retried until it succeeds.

Which faults are worth retrying is decided by a table of rules that is evaluated in
order. The first rule that matches an exception decides its fate:

* End of stream and socket timeouts are retried without noise.
* I/O errors from object store clients, recognized by type name, are retried without
  noise as well.
* All other I/O errors are retried, but logged, because operators need to see when
  the remote storage misbehaves systematically.
* Non-I/O errors from object store clients are retried without noise, since some
  client versions raise these outside of the OSError hierarchy.
* Anything else is a bug or a permanent failure and aborts the operation.
"""

from dataclasses import dataclass
from enum import auto, Enum
import socket
import time
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from icepersist.config import RetryConfig
from icepersist.constants import MEDIUM, RETRY_DELAY_MS
from icepersist.errors import PersistError
from icepersist.logger import log, summarize
from icepersist.timeline import Direction, TimeLine, timeline as default_timeline

T = TypeVar("T")


class Fault(Enum):
    """Classification of an exception raised by a remote I/O operation."""

    TRANSIENT = auto()
    TRANSIENT_LOGGED = auto()
    FATAL = auto()


class FatalIOError(PersistError):
    """Exception raised when a remote I/O operation fails in a way that won't heal."""

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message)

        self.cause = cause


def type_name(exc: BaseException) -> str:
    """Return the fully qualified type name of an exception."""
    cls = exc.__class__
    return f"{cls.__module__}.{cls.__qualname__}"


def name_matcher(substrings: Iterable[str]) -> Callable[[BaseException], bool]:
    """Create a predicate that matches exceptions by substrings of their type name."""
    patterns = tuple(substrings)

    def matches(exc: BaseException) -> bool:
        name = type_name(exc)
        return any(p in name for p in patterns)

    return matches


def _always(exc: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class Rule:
    """Classify exceptions of the given types that satisfy the matcher."""

    types: Tuple[type, ...]
    matcher: Callable[[BaseException], bool]
    fault: Fault


def default_rules(transient_type_names: Sequence[str] = ("S3Exception",)) -> List[Rule]:
    """Build the standard classification table."""
    object_store_fault = name_matcher(transient_type_names)

    return [
        Rule((EOFError, socket.timeout, TimeoutError), _always, Fault.TRANSIENT),
        Rule((OSError,), object_store_fault, Fault.TRANSIENT),
        Rule((OSError,), _always, Fault.TRANSIENT_LOGGED),
        Rule((Exception,), object_store_fault, Fault.TRANSIENT),
    ]


def classify(exc: BaseException, rules: Sequence[Rule]) -> Fault:
    """Return the classification of the first matching rule, or FATAL."""
    for rule in rules:
        if isinstance(exc, rule.types) and rule.matcher(exc):
            return rule.fault

    return Fault.FATAL


class RetryExecutor:
    """
    Runs remote I/O operations until they succeed or fail fatally.

    There is no limit on the number of attempts and no backoff: resets of the remote
    file system are expected to heal within seconds and a fixed delay gets the
    operation through as soon as that happens. Cancellation and deadlines are up to
    the caller.
    """

    def __init__(
        self,
        rules: Optional[Sequence[Rule]] = None,
        delay_ms: int = RETRY_DELAY_MS,
        timeline: TimeLine = default_timeline,
        medium: str = MEDIUM,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rules = list(rules) if rules is not None else default_rules()
        self._delay = delay_ms / 1000
        self._timeline = timeline
        self._medium = medium
        self._sleep = sleep

    @staticmethod
    def from_config(
        config: RetryConfig, timeline: TimeLine = default_timeline
    ) -> "RetryExecutor":
        """Create an executor with the retry delay and type names of the config."""
        return RetryExecutor(
            rules=default_rules(config.transient_type_names),
            delay_ms=config.delay_ms,
            timeline=timeline,
        )

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    def run(self, operation: Callable[[], T], read: bool, size: int) -> T:
        """
        Run the operation and return its result, retrying transient faults.

        The size is the number of bytes moved by the operation and is only used for
        telemetry, like the read flag.
        """
        # Count all I/O time from here, including retries
        start_io_ms = int(time.time() * 1000)
        direction = Direction.READ if read else Direction.WRITE

        while True:
            # Blocking I/O call timing, without the failed attempts
            start_ns = time.monotonic_ns()

            try:
                result = operation()
            except Exception as e:
                fault = classify(e, self._rules)

                if fault is Fault.FATAL:
                    log.error(f"remote i/o failed: {type_name(e)}: {summarize(e)}")
                    raise FatalIOError(f"remote i/o failed: {summarize(e)}", e) from e

                self._ignore_and_wait(e, fault is Fault.TRANSIENT_LOGGED)
            else:
                self._timeline.record_io(
                    start_ns, start_io_ms, direction, size, self._medium
                )
                return result

    def _ignore_and_wait(self, exc: Exception, print_exception: bool) -> None:
        if print_exception:
            log.warning("hit remote file system reset problem, retrying...", exc_info=exc)
        else:
            log.debug(f"hit remote file system reset problem, retrying... ({exc!r})")

        self._sleep(self._delay)
