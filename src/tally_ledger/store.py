"""Index of every poll hosted by one service."""

from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence
import logging
import threading

from .config import LedgerConfig
from .crypto import ElGamalCapability, elgamal_keygen
from .errors import PollNotFound
from .oracle import DecryptionResult, LocalDecryptionOracle
from .poll import PollLedger

log = logging.getLogger(__name__)


class PollStore:
    """Polls keyed by ``poll_id``, kept in creation order.

    Each poll gets its own keypair and local oracle, so tallies of one poll
    can never be decrypted with another poll's key.
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()
        self._polls: "OrderedDict[str, PollLedger]" = OrderedDict()
        self._lock = threading.Lock()

    def create(
        self,
        options: Sequence[str],
        title: str = "",
        description: str = "",
        creator: str = "",
    ) -> PollLedger:
        pub, priv = elgamal_keygen()
        oracle = LocalDecryptionOracle(
            pub, priv, oracle_id=self.config.oracle_id or "local-oracle"
        )
        poll = PollLedger(
            options,
            ElGamalCapability(pub),
            oracle,
            self.config,
            title=title,
            description=description,
            creator=creator,
        )
        with self._lock:
            self._polls[poll.poll_id] = poll
        log.info("stored poll %s, key %s", poll.poll_id, pub.fingerprint())
        return poll

    def get(self, poll_id: str) -> PollLedger:
        try:
            return self._polls[poll_id]
        except KeyError:
            raise PollNotFound(poll_id) from None

    def list(self) -> List[PollLedger]:
        with self._lock:
            return list(self._polls.values())

    def deliver(self, poll_id: str) -> List[DecryptionResult]:
        """Let the poll's local oracle answer its queued requests."""
        poll = self.get(poll_id)
        return poll.oracle.deliver(poll)

    def dashboard(self) -> Dict[str, Any]:
        polls = self.list()
        total_votes = sum(len(p.ledger) for p in polls)
        options = sum(len(p.registry) for p in polls)
        return {
            "total_polls": len(polls),
            "active_polls": sum(1 for p in polls if len(p.ledger) > 0),
            "total_votes": total_votes,
            "avg_options_per_poll": options / len(polls) if polls else 0.0,
        }

    def __len__(self) -> int:
        return len(self._polls)
