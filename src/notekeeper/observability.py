"""Logging setup and per-operation metrics for the note store.

Every traced store operation is counted under its name together with how
long it took, whether it failed, which owners issued it and how many notes
or statistics rows it returned. ``nk_metrics`` reports the collected
numbers.
"""
import functools
import inspect
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, Set, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".notekeeper" / "logs"
LOG_FILE_NAME = "notekeeper.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Arguments lifted out of a traced call into its log context
TRACED_ARGUMENTS = ("note_id", "owner", "key")

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send the ``notekeeper`` logger to a rotating log file.

    Calling this again with the same directory does not add a second file
    handler.

    Returns:
        The directory holding ``notekeeper.log``.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = (log_path / LOG_FILE_NAME).resolve()

    store_logger = logging.getLogger("notekeeper")
    store_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    file_handlers = [
        h for h in store_logger.handlers if isinstance(h, RotatingFileHandler)
    ]
    if not any(Path(h.baseFilename).resolve() == log_file for h in file_handlers):
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        store_logger.addHandler(file_handler)

    has_console = any(
        type(h) is logging.StreamHandler for h in store_logger.handlers
    )
    if console and not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        store_logger.addHandler(console_handler)

    for handler in store_logger.handlers:
        handler.setLevel(level)

    store_logger.info(f"Writing logs to {log_file}")
    return log_path


@dataclass
class OperationStats:
    """Running totals for one operation name."""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    fastest_ms: Optional[float] = None
    slowest_ms: float = 0.0
    items_returned: int = 0
    owners: Set[str] = field(default_factory=set)
    last_failure: Optional[str] = None
    last_failure_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "failure_rate": round(self.failures / self.calls, 4) if self.calls else 0.0,
            "avg_ms": round(self.total_ms / self.calls, 2) if self.calls else 0.0,
            "fastest_ms": round(self.fastest_ms or 0.0, 2),
            "slowest_ms": round(self.slowest_ms, 2),
            "items_returned": self.items_returned,
            "distinct_owners": len(self.owners),
            "last_failure": self.last_failure,
            "last_failure_at": (
                self.last_failure_at.isoformat() if self.last_failure_at else None
            ),
        }


class MetricsCollector:
    """Thread-safe in-memory totals for traced operations."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = {}
        self._lock = Lock()
        self._since = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        error: Optional[str] = None,
        owner: Optional[str] = None,
        items: Optional[int] = None,
    ) -> None:
        """Add one call of ``operation`` to the totals.

        ``error`` is the failure message, None for a successful call.
        ``items`` is the number of notes or rows the call returned.
        """
        with self._lock:
            stats = self._stats.setdefault(operation, OperationStats())
            stats.calls += 1
            stats.total_ms += duration_ms
            stats.slowest_ms = max(stats.slowest_ms, duration_ms)
            if stats.fastest_ms is None or duration_ms < stats.fastest_ms:
                stats.fastest_ms = duration_ms
            if owner:
                stats.owners.add(owner)
            if items:
                stats.items_returned += items
            if error is not None:
                stats.failures += 1
                stats.last_failure = error
                stats.last_failure_at = datetime.now(timezone.utc)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: stats.as_dict() for name, stats in self._stats.items()}

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            calls = sum(s.calls for s in self._stats.values())
            failures = sum(s.failures for s in self._stats.values())
            owners = set().union(*(s.owners for s in self._stats.values()))
            return {
                "since": self._since.isoformat(),
                "uptime_seconds": round(
                    (datetime.now(timezone.utc) - self._since).total_seconds(), 3
                ),
                "calls": calls,
                "failures": failures,
                "active_owners": len(owners),
                "operations": sorted(self._stats),
            }

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
            self._since = datetime.now(timezone.utc)


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a block of store work and record it under ``operation``.

    The yielded dict collects result details for the closing log line; setting
    ``result_count`` there also feeds the ``items_returned`` total. An
    ``owner`` in ``context`` is counted towards the operation's owners.

        with timed_operation("nk_list_notes", owner=owner) as op:
            page = service.list_owner_notes(owner, offset, limit)
            op["result_count"] = len(page)
    """
    ref = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = {}
    described = " ".join(f"{k}={v!r}" for k, v in context.items())
    logger.debug(f"[{ref}] {operation} start {described}")

    error = None
    started = time.perf_counter()
    try:
        yield details
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(
            operation,
            elapsed_ms,
            error=error,
            owner=context.get("owner"),
            items=details.get("result_count"),
        )
        outcome = "ok" if error is None else f"failed ({error})"
        extra = " ".join(f"{k}={v!r}" for k, v in details.items())
        logger.debug(f"[{ref}] {operation} {outcome} in {elapsed_ms:.2f}ms {extra}".rstrip())


def _call_context(signature: inspect.Signature, args, kwargs) -> Dict[str, Any]:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {
        name: bound.arguments[name]
        for name in TRACED_ARGUMENTS
        if name in bound.arguments
    }


def _result_size(result: Any) -> Optional[int]:
    if result is None or isinstance(result, (str, bytes, bool, int)):
        return None
    try:
        return len(result)
    except TypeError:
        return None


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run each call of the decorated function inside ``timed_operation``.

    ``note_id``, ``owner`` and ``key`` are picked out of the call whether
    they were passed by position or keyword. Pages and statistics report
    their length as ``result_count``.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = _call_context(signature, args, kwargs)
            with timed_operation(name, **context) as op:
                result = func(*args, **kwargs)
                size = _result_size(result)
                if size is not None:
                    op["result_count"] = size
                return result

        return wrapper  # type: ignore
    return decorator
