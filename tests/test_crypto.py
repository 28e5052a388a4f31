import pytest

from tally_ledger import crypto


def test_aggregation_and_decryption_roundtrip(keys, capability):
    pub, priv = keys
    options = ["Alice", "Bob"]
    ballots = ["Alice", "Bob", "Alice"]

    totals = {k: capability.zero() for k in options}
    for choice in ballots:
        enc = crypto.encrypt_choice(capability, options, choice)
        for k, ct in enc.items():
            totals[k] = capability.add(totals[k], ct)

    counts = {}
    for k, ct in totals.items():
        proof = crypto.generate_decryption_proof(priv, ct, pub)
        assert crypto.verify_decryption_proof(pub, proof) is True
        counts[k] = crypto.decrypt_count(priv, ct, len(ballots))
        assert crypto.verify_decryption(pub, ct, counts[k], proof) is True

    assert counts == {"Alice": 2, "Bob": 1}


def test_verify_decryption_rejects_wrong_cleartext(keys, capability):
    pub, priv = keys
    ct = capability.add(capability.one(), capability.one())
    proof = crypto.generate_decryption_proof(priv, ct, pub)
    assert crypto.verify_decryption(pub, ct, 2, proof) is True
    assert crypto.verify_decryption(pub, ct, 3, proof) is False
    assert crypto.verify_decryption(pub, ct, -1, proof) is False


def test_verify_decryption_rejects_tampered_proof(keys, capability):
    pub, priv = keys
    ct = capability.one()
    proof = crypto.generate_decryption_proof(priv, ct, pub)
    tampered = dict(proof, z=(proof["z"] + 1) % pub.params.q)
    assert crypto.verify_decryption(pub, ct, 1, tampered) is False
    # proof for a different ciphertext does not transfer
    other = capability.one()
    assert crypto.verify_decryption(pub, other, 1, proof) is False
    assert crypto.verify_decryption(pub, ct, 1, {}) is False


def test_is_initialized(capability):
    assert capability.is_initialized(capability.zero()) is True
    assert capability.is_initialized((0, 1)) is False
    assert capability.is_initialized((1,)) is False
    assert capability.is_initialized("ciphertext") is False
    assert capability.is_initialized((True, 1)) is False


def test_encrypt_rejects_non_bits(capability):
    with pytest.raises(ValueError):
        capability.encrypt(2)


def test_encrypt_choice_rejects_unknown_option(capability):
    with pytest.raises(ValueError):
        crypto.encrypt_choice(capability, ["A", "B"], "C")


def test_discrete_log_bsgs_matches_linear_scan():
    params = crypto.elgamal_params_default()
    for k in (0, 1, 17, 64, 65, 250):
        value = pow(params.g, k, params.p)
        assert crypto.discrete_log(params.g, value, params.p, 300) == k
    assert crypto.discrete_log_bsgs(params.g, pow(params.g, 301, params.p), params.p, 300) is None
    assert crypto.discrete_log_small(params.g, pow(params.g, 9, params.p), params.p, 8) is None
