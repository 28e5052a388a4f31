"""Asynchronous decryption protocol between the ledger and an oracle.

The client snapshots a tally's ciphertext, hands it to the oracle and
returns immediately. The oracle answers later, in a separate call, with a
cleartext count and a Chaum-Pedersen proof. The client verifies the proof
against the snapshot before publishing anything.

Request lifecycle: Requested -> Fulfilled | Abandoned.
"""

from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple
import logging
import time

from .config import LedgerConfig
from .crypto import (
    Ciphertext,
    ElGamalPrivateKey,
    ElGamalPublicKey,
    decrypt_count,
    generate_decryption_proof,
)
from .errors import InvalidProof, UnauthorizedCaller, UnknownRequest
from .events import DecryptionAbandoned, DecryptionRequested, EventLog, VoteCountDecrypted
from .guards import require_caller
from .registry import ChoiceRegistry, choice_commitment

log = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    REQUESTED = "requested"
    FULFILLED = "fulfilled"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class DecryptionRequest:
    request_id: int
    choice_key_commitment: str
    ciphertext: Ciphertext
    requested_at: int
    expires_at: int


@dataclass(frozen=True)
class DecryptionResult:
    request_id: int
    choice_key: str
    count: int


class OracleCapability(Protocol):
    def submit(self, request_id: int, ciphertext: Ciphertext) -> None: ...


class DecryptionOracleClient:
    def __init__(
        self,
        registry: ChoiceRegistry,
        oracle: OracleCapability,
        events: EventLog,
        config: Optional[LedgerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.oracle = oracle
        self.events = events
        self.config = config or LedgerConfig()
        self.clock = clock
        self._ids = count(1)
        self._pending: "OrderedDict[int, DecryptionRequest]" = OrderedDict()
        self._status: Dict[int, RequestStatus] = {}
        self.results: Dict[int, DecryptionResult] = {}

    def request(self, choice_key: str, caller: Optional[str] = None) -> int:
        """Ask the oracle to decrypt the current tally of ``choice_key``.

        The tally is snapshotted here; votes folded after this call are not
        part of the answer.
        """
        require_caller(caller, self.config.admins, "request decryption")
        tally = self.registry.lookup(choice_key)
        now = int(self.clock())
        req = DecryptionRequest(
            request_id=next(self._ids),
            choice_key_commitment=choice_commitment(choice_key),
            ciphertext=tally.encrypted_count,
            requested_at=now,
            expires_at=now + self.config.request_ttl,
        )
        self._pending[req.request_id] = req
        try:
            self.oracle.submit(req.request_id, req.ciphertext)
        except Exception:
            del self._pending[req.request_id]
            raise
        self._status[req.request_id] = RequestStatus.REQUESTED
        log.info("decryption request %d issued", req.request_id)
        self.events.emit(DecryptionRequested(request_id=req.request_id))
        return req.request_id

    def callback(
        self,
        request_id: int,
        cleartext: int,
        proof: Mapping[str, Any],
        caller: Optional[str] = None,
    ) -> DecryptionResult:
        if self.config.oracle_id is not None and caller != self.config.oracle_id:
            log.warning("callback for %r from untrusted caller %r", request_id, caller)
            raise UnauthorizedCaller(f"{caller!r} is not the decryption oracle")
        req = self._pending.get(request_id)
        if req is None:
            raise UnknownRequest(request_id)
        if not self.registry.capability.verify_decryption(req.ciphertext, cleartext, proof):
            log.warning("callback for request %d carried an invalid proof", request_id)
            raise InvalidProof(f"proof does not verify for request {request_id}")
        choice_key = self.registry.resolve_commitment(req.choice_key_commitment)

        del self._pending[request_id]
        self._status[request_id] = RequestStatus.FULFILLED
        result = DecryptionResult(request_id=request_id, choice_key=choice_key, count=cleartext)
        self.results[request_id] = result
        log.info("decryption request %d fulfilled", request_id)
        self.events.emit(VoteCountDecrypted(choice_key=choice_key, count=cleartext))
        return result

    def abandon(self, request_id: int, reason: str, caller: Optional[str] = None) -> None:
        require_caller(caller, self.config.admins, "abandon decryption")
        self._abandon(request_id, reason)

    def _abandon(self, request_id: int, reason: str) -> None:
        if request_id not in self._pending:
            raise UnknownRequest(request_id)
        del self._pending[request_id]
        self._status[request_id] = RequestStatus.ABANDONED
        log.info("decryption request %d abandoned: %s", request_id, reason)
        self.events.emit(DecryptionAbandoned(request_id=request_id, reason=reason))

    def expire_stale(self, now: Optional[float] = None) -> List[int]:
        """Abandon every pending request whose expiry has passed."""
        now = self.clock() if now is None else now
        stale = [rid for rid, req in self._pending.items() if req.expires_at <= now]
        for rid in stale:
            self._abandon(rid, "expired")
        return stale

    def pending(self) -> List[DecryptionRequest]:
        return list(self._pending.values())

    def status(self, request_id: int) -> RequestStatus:
        try:
            return self._status[request_id]
        except KeyError:
            raise UnknownRequest(request_id) from None


class LocalDecryptionOracle:
    """In-process oracle holding the private key.

    ``submit`` only queues work. Answers are produced later by ``answer`` or
    ``deliver``, which keeps the request and the callback in separate calls.
    """

    def __init__(
        self,
        pub: ElGamalPublicKey,
        priv: ElGamalPrivateKey,
        oracle_id: str = "local-oracle",
        max_count: int = 100_000,
    ):
        self.pub = pub
        self.priv = priv
        self.oracle_id = oracle_id
        self.max_count = max_count
        self._jobs: "OrderedDict[int, Ciphertext]" = OrderedDict()

    def submit(self, request_id: int, ciphertext: Ciphertext) -> None:
        self._jobs[request_id] = ciphertext

    def queued(self) -> List[int]:
        return list(self._jobs)

    def answer(self, request_id: int) -> Tuple[int, Dict[str, int]]:
        """Decrypt a queued job and return (cleartext, proof).

        The job stays queued until a callback accepts the answer.
        """
        ciphertext = self._jobs[request_id]
        cleartext = decrypt_count(self.priv, ciphertext, self.max_count)
        if cleartext is None:
            raise ValueError(f"count for request {request_id} exceeds {self.max_count}")
        proof = generate_decryption_proof(self.priv, ciphertext, self.pub)
        return cleartext, proof

    def discard(self, request_id: int) -> None:
        self._jobs.pop(request_id, None)

    def deliver(self, target) -> List[Any]:
        """Answer every queued job through ``target.callback``.

        Jobs the ledger no longer has pending (abandoned or already fulfilled)
        are dropped. Any other callback failure propagates and leaves that job
        and the ones after it queued for a later delivery.
        """
        out = []
        for request_id in list(self._jobs):
            cleartext, proof = self.answer(request_id)
            try:
                result = target.callback(request_id, cleartext, proof, caller=self.oracle_id)
            except UnknownRequest:
                log.info("dropping job %d, request no longer pending", request_id)
                self.discard(request_id)
                continue
            self.discard(request_id)
            out.append(result)
        return out
