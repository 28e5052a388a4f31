"""Folds new ledger entries into the encrypted tallies."""

from typing import Dict, Optional
import logging

from .config import LedgerConfig
from .crypto import Ciphertext
from .errors import ChoiceNotFound
from .guards import require_caller
from .ledger import VoteLedger
from .registry import ChoiceRegistry

log = logging.getLogger(__name__)


class AggregationEngine:
    """Homomorphic aggregation with a cursor.

    ``cursor`` is the id of the last vote already folded. Each call only
    touches votes after it, so repeated calls with no new votes fold nothing.
    """

    def __init__(
        self,
        ledger: VoteLedger,
        registry: ChoiceRegistry,
        config: Optional[LedgerConfig] = None,
    ):
        self.ledger = ledger
        self.registry = registry
        self.config = config or LedgerConfig()
        self.cursor = 0

    def pending(self) -> int:
        return len(self.ledger) - self.cursor

    def aggregate(self, caller: Optional[str] = None) -> int:
        require_caller(caller, self.config.aggregators, "aggregate")
        batch = self.ledger.since(self.cursor)
        if not batch:
            return 0

        capability = self.registry.capability
        staged: Dict[str, Ciphertext] = {}
        for vote in batch:
            for key, handle in vote.encrypted_choice.items():
                if key not in self.registry:
                    log.warning("vote %d references unregistered choice %r", vote.id, key)
                    raise ChoiceNotFound(key)
                current = staged.get(key)
                if current is None:
                    current = self.registry.get_tally(key)
                staged[key] = capability.add(current, handle)
            log.debug("folded vote %d", vote.id)

        # commit only once the whole batch has been checked
        for key, encrypted_count in staged.items():
            self.registry._replace_tally(key, encrypted_count)
        self.cursor = batch[-1].id
        log.info("aggregated %d votes, cursor at %d", len(batch), self.cursor)
        return len(batch)
