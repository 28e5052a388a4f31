"""Outbound notifications consumed by indexers and frontends."""

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterator, List, Type, TypeVar
import logging

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteSubmitted:
    voter_id: str
    timestamp: int


@dataclass(frozen=True)
class DecryptionRequested:
    request_id: int


@dataclass(frozen=True)
class VoteCountDecrypted:
    choice_key: str
    count: int


@dataclass(frozen=True)
class DecryptionAbandoned:
    request_id: int
    reason: str


E = TypeVar("E")


class EventLog:
    """Append-only event log with optional subscribers."""

    def __init__(self):
        self._events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []

    def subscribe(self, fn: Callable[[Any], None]) -> None:
        self._subscribers.append(fn)

    def emit(self, event: Any) -> None:
        # state is already committed here; subscriber errors are logged only
        self._events.append(event)
        for fn in self._subscribers:
            try:
                fn(event)
            except Exception:
                log.exception("subscriber %r failed on %s", fn, type(event).__name__)

    def of_type(self, cls: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, cls)]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [{"event": type(e).__name__, **asdict(e)} for e in self._events]

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
