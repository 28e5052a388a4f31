"""tally_ledger - append-only encrypted tally ledger for anonymous polls.

Votes are stored as encrypted one-hot vectors, folded homomorphically into
per-option tallies, and only aggregated totals are ever decrypted, through
an asynchronous oracle request/callback protocol.
"""

from .aggregation import AggregationEngine
from .config import Config, LedgerConfig
from .crypto import ElGamalCapability, elgamal_keygen, encrypt_choice
from .errors import (
    ChoiceNotFound,
    CommitmentMismatch,
    DuplicateVote,
    InvalidBallot,
    InvalidProof,
    LedgerError,
    PollNotFound,
    UnauthorizedCaller,
    UnknownRequest,
)
from .events import (
    DecryptionAbandoned,
    DecryptionRequested,
    EventLog,
    VoteCountDecrypted,
    VoteSubmitted,
)
from .ledger import EncryptedVote, VoteLedger
from .oracle import DecryptionOracleClient, LocalDecryptionOracle, RequestStatus
from .poll import PollLedger
from .registry import ChoiceRegistry, ChoiceTally, choice_commitment
from .store import PollStore

__all__ = [
    "AggregationEngine",
    "ChoiceNotFound",
    "ChoiceRegistry",
    "ChoiceTally",
    "CommitmentMismatch",
    "Config",
    "DecryptionAbandoned",
    "DecryptionOracleClient",
    "DecryptionRequested",
    "DuplicateVote",
    "ElGamalCapability",
    "EncryptedVote",
    "EventLog",
    "InvalidBallot",
    "InvalidProof",
    "LedgerConfig",
    "LedgerError",
    "LocalDecryptionOracle",
    "PollLedger",
    "PollNotFound",
    "PollStore",
    "RequestStatus",
    "UnauthorizedCaller",
    "UnknownRequest",
    "VoteCountDecrypted",
    "VoteLedger",
    "VoteSubmitted",
    "choice_commitment",
    "elgamal_keygen",
    "encrypt_choice",
]
