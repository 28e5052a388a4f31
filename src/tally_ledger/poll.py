"""One poll's complete ledger state.

``PollLedger`` owns every piece of mutable state (vote log, registry,
aggregation cursor, pending requests) and serializes the mutating entry
points behind a lock so it can be shared by a threaded server.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import logging
import threading
import time
import uuid

from .aggregation import AggregationEngine
from .config import LedgerConfig
from .crypto import Ciphertext, ElGamalCapability, encrypt_choice
from .events import EventLog
from .ledger import VoteLedger
from .oracle import DecryptionOracleClient, DecryptionResult, OracleCapability
from .registry import ChoiceRegistry

log = logging.getLogger(__name__)


class PollLedger:
    def __init__(
        self,
        options: Sequence[str],
        capability: ElGamalCapability,
        oracle: OracleCapability,
        config: Optional[LedgerConfig] = None,
        title: str = "",
        description: str = "",
        creator: str = "",
        poll_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        if len(options) < 2:
            raise ValueError("a poll needs at least two options")
        if len(set(options)) != len(options):
            raise ValueError("poll options must be unique")
        self.config = config or LedgerConfig()
        self.capability = capability
        self.oracle = oracle
        self.poll_id = poll_id or uuid.uuid4().hex[:12]
        self.title = title
        self.description = description
        self.creator = creator
        self.created_at = int(clock())

        self.events = EventLog()
        self.registry = ChoiceRegistry(capability)
        for option in options:
            self.registry.ensure_registered(option)
        self.ledger = VoteLedger(
            capability, self.events, self.config, clock=clock, registry=self.registry
        )
        self.engine = AggregationEngine(self.ledger, self.registry, self.config)
        self.oracle_client = DecryptionOracleClient(
            self.registry, oracle, self.events, self.config, clock=clock
        )
        self._lock = threading.Lock()
        log.info("poll %s created with %d options", self.poll_id, len(options))

    ## --- mutations --------------------------------------------------------

    def submit(self, voter_id: str, encrypted_choice: Mapping[str, Ciphertext]) -> int:
        with self._lock:
            return self.ledger.submit(voter_id, encrypted_choice)

    def cast(self, voter_id: str, choice: str) -> int:
        """Encrypt ``choice`` as a one-hot ballot and submit it."""
        ballot = encrypt_choice(self.capability, self.registry.list_choice_keys(), choice)
        return self.submit(voter_id, ballot)

    def aggregate(self, caller: Optional[str] = None) -> int:
        with self._lock:
            return self.engine.aggregate(caller=caller)

    def request(self, choice_key: str, caller: Optional[str] = None) -> int:
        with self._lock:
            return self.oracle_client.request(choice_key, caller=caller)

    def callback(
        self,
        request_id: int,
        cleartext: int,
        proof: Mapping[str, Any],
        caller: Optional[str] = None,
    ) -> DecryptionResult:
        with self._lock:
            return self.oracle_client.callback(request_id, cleartext, proof, caller=caller)

    def abandon(self, request_id: int, reason: str, caller: Optional[str] = None) -> None:
        with self._lock:
            self.oracle_client.abandon(request_id, reason, caller=caller)

    def expire_stale(self, now: Optional[float] = None) -> List[int]:
        with self._lock:
            return self.oracle_client.expire_stale(now)

    ## --- queries ----------------------------------------------------------

    def get_tally(self, choice_key: str) -> Ciphertext:
        return self.registry.get_tally(choice_key)

    def list_choice_keys(self) -> List[str]:
        return self.registry.list_choice_keys()

    def results(self) -> Dict[str, int]:
        """Latest published count per option."""
        out: Dict[str, int] = {}
        for rid in sorted(self.oracle_client.results):
            res = self.oracle_client.results[rid]
            out[res.choice_key] = res.count
        return out

    def stats(self) -> Dict[str, Any]:
        return {
            "total_votes": len(self.ledger),
            "aggregated_votes": self.engine.cursor,
            "unaggregated_votes": self.engine.pending(),
            "options": len(self.registry),
            "pending_requests": len(self.oracle_client.pending()),
            "results": self.results(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poll_id": self.poll_id,
            "title": self.title,
            "description": self.description,
            "creator": self.creator,
            "created_at": self.created_at,
            "options": self.list_choice_keys(),
            "stats": self.stats(),
        }
