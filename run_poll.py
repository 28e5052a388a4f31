"""Reference runner: a small anonymous poll from setup to published totals.

Run this script from the repository root after installing the package.
"""

from tally_ledger import (
    ElGamalCapability,
    LedgerConfig,
    LocalDecryptionOracle,
    PollLedger,
    UnknownRequest,
    elgamal_keygen,
)
from tally_ledger.config import configure_logging


def _print_heading(msg: str):
    print()
    print(msg)


def _print_kv(key: str, value):
    print(f"  {key}: {value}")


def main():
    configure_logging("WARNING")

    _print_heading("[Setup] keys, oracle and ballot")
    pub, priv = elgamal_keygen()
    oracle = LocalDecryptionOracle(pub, priv, oracle_id="demo-oracle")
    poll = PollLedger(
        ["A", "B"],
        ElGamalCapability(pub),
        oracle,
        LedgerConfig(oracle_id="demo-oracle"),
        title="Demo poll",
        creator="demo",
    )
    _print_kv("public key", pub.fingerprint())
    _print_kv("options", poll.list_choice_keys())

    _print_heading("[Voting] encrypted one-hot ballots")
    choices = ["A", "A", "A", "B", "B"]
    for i, choice in enumerate(choices):
        vote_id = poll.cast(f"voter-{i}", choice)
        _print_kv(f"voter-{i}", f"vote {vote_id}")

    _print_heading("[Aggregation]")
    _print_kv("folded", poll.aggregate())
    _print_kv("folded again", poll.aggregate())

    _print_heading("[Decryption] request, then asynchronous oracle answers")
    request_ids = {key: poll.request(key) for key in poll.list_choice_keys()}
    for key, rid in request_ids.items():
        _print_kv(f"request {rid}", key)
    for result in oracle.deliver(poll):
        _print_kv(result.choice_key, result.count)

    _print_heading("[Replay] second callback for a fulfilled request")
    rid = request_ids["A"]
    try:
        poll.callback(rid, 3, {}, caller="demo-oracle")
    except UnknownRequest as e:
        _print_kv("rejected", e)

    _print_heading("[Events]")
    for event in poll.events.to_dicts():
        print(" ", event)

    _print_heading("[Stats]")
    for key, value in poll.stats().items():
        _print_kv(key, value)


if __name__ == "__main__":
    main()
