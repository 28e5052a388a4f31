import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    LEDGER_ORACLE_ID = os.getenv("LEDGER_ORACLE_ID", "local-oracle")
    LEDGER_AGGREGATORS = _env_list("LEDGER_AGGREGATORS")
    LEDGER_ADMINS = _env_list("LEDGER_ADMINS")
    LEDGER_ELIGIBLE_VOTERS = _env_list("LEDGER_ELIGIBLE_VOTERS")
    LEDGER_REQUEST_TTL = int(os.getenv("LEDGER_REQUEST_TTL", "3600"))
    LEDGER_SINGLE_VOTE = _env_bool("LEDGER_SINGLE_VOTE", "true")
    LEDGER_OPTIONS = _env_list("LEDGER_OPTIONS", "Alice,Bob,Carol")
    LEDGER_LOG_LEVEL = os.getenv("LEDGER_LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class LedgerConfig:
    """Resolved guard settings for one poll.

    Empty role sets mean the entry point is open to any caller. A ``None``
    oracle_id disables the callback identity check.
    """

    oracle_id: Optional[str] = None
    aggregators: FrozenSet[str] = field(default_factory=frozenset)
    admins: FrozenSet[str] = field(default_factory=frozenset)
    eligible_voters: FrozenSet[str] = field(default_factory=frozenset)
    request_ttl: int = 3600
    single_vote: bool = True

    @classmethod
    def from_env(cls, config=Config) -> "LedgerConfig":
        return cls(
            oracle_id=config.LEDGER_ORACLE_ID or None,
            aggregators=frozenset(config.LEDGER_AGGREGATORS),
            admins=frozenset(config.LEDGER_ADMINS),
            eligible_voters=frozenset(config.LEDGER_ELIGIBLE_VOTERS),
            request_ttl=config.LEDGER_REQUEST_TTL,
            single_vote=config.LEDGER_SINGLE_VOTE,
        )


def configure_logging(level: str = Config.LEDGER_LOG_LEVEL) -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(level.upper())
