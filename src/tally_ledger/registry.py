"""Canonical poll options and their running encrypted tallies."""

from dataclasses import dataclass
from typing import Dict, List
import hashlib
import logging

from .crypto import Ciphertext, ElGamalCapability
from .errors import ChoiceNotFound, CommitmentMismatch

log = logging.getLogger(__name__)


def choice_commitment(choice_key: str) -> str:
    return hashlib.sha256(choice_key.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ChoiceTally:
    key: str
    encrypted_count: Ciphertext


class ChoiceRegistry:
    """Maps each registered option to exactly one tally.

    Keys come from poll configuration and are never removed. The order of
    registration is the ballot order.
    """

    def __init__(self, capability: ElGamalCapability):
        self.capability = capability
        self._tallies: Dict[str, ChoiceTally] = {}
        self._keys: List[str] = []
        self._by_commitment: Dict[str, str] = {}

    def ensure_registered(self, choice_key: str) -> ChoiceTally:
        if not isinstance(choice_key, str) or not choice_key:
            raise ValueError("choice_key must be a non-empty string")
        tally = self._tallies.get(choice_key)
        if tally is not None:
            return tally
        tally = ChoiceTally(key=choice_key, encrypted_count=self.capability.zero())
        self._tallies[choice_key] = tally
        self._keys.append(choice_key)
        self._by_commitment[choice_commitment(choice_key)] = choice_key
        log.info("registered choice %r", choice_key)
        return tally

    def lookup(self, choice_key: str) -> ChoiceTally:
        try:
            return self._tallies[choice_key]
        except KeyError:
            raise ChoiceNotFound(choice_key) from None

    def get_tally(self, choice_key: str) -> Ciphertext:
        return self.lookup(choice_key).encrypted_count

    def list_choice_keys(self) -> List[str]:
        return list(self._keys)

    def resolve_commitment(self, commitment: str) -> str:
        try:
            return self._by_commitment[commitment]
        except KeyError:
            raise CommitmentMismatch(
                f"commitment {commitment[:16]}.. matches no registered choice"
            ) from None

    def __contains__(self, choice_key: str) -> bool:
        return choice_key in self._tallies

    def __len__(self) -> int:
        return len(self._keys)

    def _replace_tally(self, choice_key: str, encrypted_count: Ciphertext) -> None:
        # only the aggregation engine calls this
        if choice_key not in self._tallies:
            raise ChoiceNotFound(choice_key)
        self._tallies[choice_key] = ChoiceTally(key=choice_key, encrypted_count=encrypted_count)
