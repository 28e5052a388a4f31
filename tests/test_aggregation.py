import pytest

from tally_ledger import (
    AggregationEngine,
    ChoiceNotFound,
    ChoiceRegistry,
    EventLog,
    LedgerConfig,
    UnauthorizedCaller,
    VoteLedger,
    encrypt_choice,
)
from tally_ledger.crypto import decrypt_count


def _setup(capability, options=("A", "B"), **config):
    cfg = LedgerConfig(**config)
    registry = ChoiceRegistry(capability)
    for key in options:
        registry.ensure_registered(key)
    ledger = VoteLedger(capability, EventLog(), cfg)
    return ledger, registry, AggregationEngine(ledger, registry, cfg)


def _counts(priv, registry):
    return {k: decrypt_count(priv, registry.get_tally(k), 100) for k in registry.list_choice_keys()}


def test_aggregate_folds_votes_into_tallies(keys, capability):
    _, priv = keys
    ledger, registry, engine = _setup(capability)
    for i, choice in enumerate("AAB"):
        ledger.submit(f"v{i}", encrypt_choice(capability, ["A", "B"], choice))
    assert engine.aggregate() == 3
    assert engine.cursor == 3
    assert _counts(priv, registry) == {"A": 2, "B": 1}


def test_aggregate_is_idempotent(keys, capability):
    _, priv = keys
    ledger, registry, engine = _setup(capability)
    ledger.submit("v1", encrypt_choice(capability, ["A", "B"], "A"))
    assert engine.aggregate() == 1
    before = {k: registry.get_tally(k) for k in registry.list_choice_keys()}

    assert engine.aggregate() == 0
    after = {k: registry.get_tally(k) for k in registry.list_choice_keys()}
    assert before == after
    assert engine.cursor == 1


def test_aggregate_only_folds_new_votes(keys, capability):
    _, priv = keys
    ledger, registry, engine = _setup(capability)
    ledger.submit("v1", encrypt_choice(capability, ["A", "B"], "A"))
    engine.aggregate()
    ledger.submit("v2", encrypt_choice(capability, ["A", "B"], "B"))
    ledger.submit("v3", encrypt_choice(capability, ["A", "B"], "B"))
    assert engine.pending() == 2
    assert engine.aggregate() == 2
    assert engine.pending() == 0
    assert _counts(priv, registry) == {"A": 1, "B": 2}


def test_unregistered_choice_rejects_whole_batch(keys, capability):
    _, priv = keys
    ledger, registry, engine = _setup(capability)
    ledger.submit("v1", encrypt_choice(capability, ["A", "B"], "A"))
    # a ballot carrying a slot for an option the poll never registered
    ledger.submit("v2", encrypt_choice(capability, ["A", "B", "X"], "X"))
    before = {k: registry.get_tally(k) for k in registry.list_choice_keys()}

    with pytest.raises(ChoiceNotFound):
        engine.aggregate()

    assert engine.cursor == 0
    assert {k: registry.get_tally(k) for k in registry.list_choice_keys()} == before
    assert "X" not in registry
    assert registry.list_choice_keys() == ["A", "B"]


def test_aggregate_restricted_to_aggregators(capability):
    ledger, registry, engine = _setup(capability, aggregators=frozenset({"agg"}))
    ledger.submit("v1", encrypt_choice(capability, ["A", "B"], "A"))
    with pytest.raises(UnauthorizedCaller):
        engine.aggregate(caller="someone")
    assert engine.cursor == 0
    assert engine.aggregate(caller="agg") == 1
