"""Append-only log of encrypted votes."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Set
import logging
import time

from .config import LedgerConfig
from .crypto import Ciphertext, ElGamalCapability
from .errors import DuplicateVote, InvalidBallot
from .events import EventLog, VoteSubmitted
from .guards import require_caller
from .registry import ChoiceRegistry

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptedVote:
    """One submitted vote.

    ``encrypted_choice`` maps each option key to the encrypted bit for that
    option; exactly one slot encrypts 1 for a well-behaved voter.
    """

    id: int
    voter_id: str
    encrypted_choice: Mapping[str, Ciphertext]
    timestamp: int


class VoteLedger:
    def __init__(
        self,
        capability: ElGamalCapability,
        events: EventLog,
        config: Optional[LedgerConfig] = None,
        clock: Callable[[], float] = time.time,
        registry: Optional[ChoiceRegistry] = None,
    ):
        self.capability = capability
        self.events = events
        self.registry = registry
        self.config = config or LedgerConfig()
        self.clock = clock
        self._votes: List[EncryptedVote] = []
        self._voters: Set[str] = set()

    def submit(self, voter_id: str, encrypted_choice: Mapping[str, Ciphertext]) -> int:
        """Append a vote and return its id.

        Every check runs before the append, so a rejected vote leaves the
        ledger untouched.
        """
        if not isinstance(voter_id, str) or not voter_id:
            raise InvalidBallot("voter_id must be a non-empty string")
        require_caller(voter_id, self.config.eligible_voters, "vote")
        if self.config.single_vote and voter_id in self._voters:
            raise DuplicateVote(f"voter {voter_id!r} has already voted")
        slots = self._validate(encrypted_choice)

        vote = EncryptedVote(
            id=len(self._votes) + 1,
            voter_id=voter_id,
            encrypted_choice=MappingProxyType(slots),
            timestamp=int(self.clock()),
        )
        self._votes.append(vote)
        self._voters.add(voter_id)
        log.info("vote %d appended", vote.id)
        self.events.emit(VoteSubmitted(voter_id=voter_id, timestamp=vote.timestamp))
        return vote.id

    def _validate(self, encrypted_choice: Mapping[str, Ciphertext]) -> Dict[str, Ciphertext]:
        if not isinstance(encrypted_choice, Mapping) or not encrypted_choice:
            raise InvalidBallot("encrypted_choice must be a non-empty mapping")
        slots: Dict[str, Ciphertext] = {}
        for key, handle in encrypted_choice.items():
            if not self.capability.is_initialized(handle):
                raise InvalidBallot(f"slot {key!r} is not a valid ciphertext")
            slots[key] = (handle[0], handle[1])
        if self.registry is not None:
            # one slot per registered option, no more and no fewer
            expected = set(self.registry.list_choice_keys())
            if set(slots) != expected:
                unknown = sorted(set(slots) - expected)
                missing = sorted(expected - set(slots))
                raise InvalidBallot(
                    f"ballot slots do not match the poll options (unknown={unknown}, missing={missing})"
                )
        return slots

    def since(self, cursor: int) -> List[EncryptedVote]:
        """Entries with id > cursor, in append order."""
        # ids are 1-based and dense, so id == position + 1
        return self._votes[max(cursor, 0):]

    def get(self, vote_id: int) -> EncryptedVote:
        if not 1 <= vote_id <= len(self._votes):
            raise KeyError(vote_id)
        return self._votes[vote_id - 1]

    def has_voted(self, voter_id: str) -> bool:
        return voter_id in self._voters

    def __iter__(self) -> Iterator[EncryptedVote]:
        return iter(list(self._votes))

    def __len__(self) -> int:
        return len(self._votes)
