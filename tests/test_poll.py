import threading

import pytest

from tally_ledger import (
    ElGamalCapability,
    InvalidBallot,
    LocalDecryptionOracle,
    PollLedger,
    UnauthorizedCaller,
    UnknownRequest,
    VoteCountDecrypted,
)


def _decrypt_all(poll, oracle):
    for key in poll.list_choice_keys():
        poll.request(key)
    return {r.choice_key: r.count for r in oracle.deliver(poll)}


def test_end_to_end_scenario(poll, oracle):
    for i in range(3):
        poll.cast(f"a{i}", "A")
    for i in range(2):
        poll.cast(f"b{i}", "B")

    assert poll.aggregate() == 5
    assert _decrypt_all(poll, oracle) == {"A": 3, "B": 2}

    assert poll.aggregate() == 0
    assert _decrypt_all(poll, oracle) == {"A": 3, "B": 2}

    rid = poll.request("A")
    cleartext, proof = oracle.answer(rid)
    assert cleartext == 3
    result = poll.callback(rid, 3, proof, caller="oracle-1")
    assert (result.choice_key, result.count) == ("A", 3)
    assert poll.events.of_type(VoteCountDecrypted)[-1] == VoteCountDecrypted("A", 3)

    with pytest.raises(UnknownRequest):
        poll.callback(rid, 3, proof, caller="oracle-1")


def test_conservation_across_options(capability, keys, clock):
    pub, priv = keys
    oracle = LocalDecryptionOracle(pub, priv, oracle_id="o", max_count=100)
    poll = PollLedger(["x", "y", "z"], capability, oracle, clock=clock)
    choices = ["x", "z", "z", "y", "z", "x", "z"]
    for i, choice in enumerate(choices):
        poll.cast(f"v{i}", choice)
    poll.aggregate()
    counts = _decrypt_all(poll, oracle)
    assert counts == {"x": 2, "y": 1, "z": 4}
    assert sum(counts.values()) == len(choices)


def test_request_snapshots_tally(poll, oracle):
    poll.cast("a0", "A")
    poll.aggregate()
    rid = poll.request("A")
    poll.cast("a1", "A")
    poll.aggregate()
    results = oracle.deliver(poll)
    assert [(r.request_id, r.count) for r in results] == [(rid, 1)]
    assert poll.results() == {"A": 1}


def test_callback_requires_trusted_oracle(poll, oracle):
    rid = poll.request("B")
    cleartext, proof = oracle.answer(rid)
    with pytest.raises(UnauthorizedCaller):
        poll.callback(rid, cleartext, proof, caller="intruder")
    assert poll.stats()["pending_requests"] == 1


def test_stats_and_metadata(poll, oracle, clock):
    poll.cast("a0", "A")
    poll.cast("b0", "B")
    poll.aggregate()
    poll.cast("b1", "B")
    stats = poll.stats()
    assert stats["total_votes"] == 3
    assert stats["aggregated_votes"] == 2
    assert stats["unaggregated_votes"] == 1
    assert stats["options"] == 2

    info = poll.to_dict()
    assert info["title"] == "Lunch"
    assert info["options"] == ["A", "B"]
    assert info["created_at"] == int(clock.now)


def test_expire_stale_through_facade(poll, clock):
    rid = poll.request("A")
    clock.now += 61
    assert poll.expire_stale() == [rid]
    assert poll.stats()["pending_requests"] == 0


def test_poll_requires_distinct_options(capability, oracle):
    with pytest.raises(ValueError):
        PollLedger(["A"], capability, oracle)
    with pytest.raises(ValueError):
        PollLedger(["A", "A"], capability, oracle)


def test_concurrent_submit_and_aggregate(keys):
    pub, priv = keys
    cap = ElGamalCapability(pub)
    oracle = LocalDecryptionOracle(pub, priv, max_count=100)
    poll = PollLedger(["A", "B"], cap, oracle)
    ballots = [cap.encrypt(1), cap.encrypt(0)]

    def worker(start):
        for i in range(start, start + 5):
            poll.submit(f"v{i}", {"A": ballots[0], "B": ballots[1]})
            poll.aggregate()

    threads = [threading.Thread(target=worker, args=(n * 5,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    poll.aggregate()

    assert poll.engine.cursor == 20
    assert _decrypt_all(poll, oracle) == {"A": 20, "B": 0}


def test_ballot_with_foreign_slot_is_refused(poll, oracle, capability):
    poll.cast("a0", "A")
    poll.cast("b0", "B")
    foreign = {"A": capability.zero(), "B": capability.zero(), "X": capability.one()}
    with pytest.raises(InvalidBallot):
        poll.submit("mallory", foreign)
    with pytest.raises(InvalidBallot):
        poll.submit("mallory", {"A": capability.one()})
    assert len(poll.ledger) == 2
    assert not poll.ledger.has_voted("mallory")

    # honest votes still fold and the cursor is not stuck
    assert poll.aggregate() == 2
    poll.cast("a1", "A")
    assert poll.aggregate() == 1
    assert _decrypt_all(poll, oracle) == {"A": 2, "B": 1}


def test_deliver_skips_abandoned_requests(poll, oracle):
    poll.cast("b0", "B")
    poll.aggregate()
    first = poll.request("A")
    second = poll.request("B")
    poll.abandon(first, "operator")

    results = oracle.deliver(poll)
    assert [(r.request_id, r.choice_key, r.count) for r in results] == [(second, "B", 1)]
    assert oracle.queued() == []


def test_deliver_keeps_job_when_callback_fails(keys, poll):
    pub, priv = keys
    wrong = LocalDecryptionOracle(pub, priv, oracle_id="someone-else")
    rid = poll.request("A")
    wrong.submit(rid, poll.oracle_client.pending()[0].ciphertext)
    with pytest.raises(UnauthorizedCaller):
        wrong.deliver(poll)
    assert wrong.queued() == [rid]
    assert poll.stats()["pending_requests"] == 1
