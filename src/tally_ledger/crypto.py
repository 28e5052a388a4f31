"""Exponential ElGamal capability used by the ledger.

This module contains the pieces the ledger treats as opaque capabilities:
- encryption: group parameters, key generation and bit encryption
- homomorphic addition of ciphertexts and bounded discrete log for counts
- verifiable decryption: Chaum-Pedersen proofs made non-interactive with a
  SHA-256 Fiat-Shamir challenge

Ciphertext handles are plain ``(c1, c2)`` tuples. The ledger never looks
inside them; it only passes them back to the capability.
"""

from math import ceil, isqrt
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import hashlib
import secrets


Ciphertext = Tuple[int, int]


## --- group + keys ---------------------------------------------------------


# RFC 3526 2048-bit MODP Group (Group 14) prime p
_P_HEX = (
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
    "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
    "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
    "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE65381"
    "FFFFFFFFFFFFFFFF"
)


class ElGamalParams:
    def __init__(self, p: int, q: int, g: int):
        self.p = p
        self.q = q
        self.g = g


class ElGamalPublicKey:
    def __init__(self, params: ElGamalParams, y: int):
        self.params = params
        self.y = y

    def fingerprint(self) -> str:
        return hashlib.sha256(str(self.y).encode()).hexdigest()[:16]


class ElGamalPrivateKey:
    def __init__(self, params: ElGamalParams, x: int):
        self.params = params
        self.x = x


def elgamal_params_default() -> ElGamalParams:
    """Return RFC 3526 group-14 parameters.

    p is a safe prime and g=2 generates the subgroup of order q = (p-1)/2.
    """
    p = int(_P_HEX, 16)
    q = (p - 1) // 2
    g = 2
    return ElGamalParams(p=p, q=q, g=g)


def _rand_scalar(q: int) -> int:
    # sample uniformly in [1, q-1]
    return secrets.randbelow(q - 1) + 1


def elgamal_keygen(
    params: Optional[ElGamalParams] = None,
) -> Tuple[ElGamalPublicKey, ElGamalPrivateKey]:
    if params is None:
        params = elgamal_params_default()
    x = _rand_scalar(params.q)
    y = pow(params.g, x, params.p)
    return ElGamalPublicKey(params=params, y=y), ElGamalPrivateKey(params=params, x=x)


def elgamal_encrypt(
    pub: ElGamalPublicKey, m: int, r: Optional[int] = None
) -> Ciphertext:
    if m not in (0, 1):
        raise ValueError("This encryptor expects m in {0,1} (bit encoding).")
    params = pub.params
    if r is None:
        r = _rand_scalar(params.q)
    c1 = pow(params.g, r, params.p)
    c2 = (pow(pub.y, r, params.p) * pow(params.g, m, params.p)) % params.p
    return c1, c2


def ciphertext_mul(a: Ciphertext, b: Ciphertext, p: int) -> Ciphertext:
    """Enc(m1) * Enc(m2) = Enc(m1 + m2) under exponent encoding."""
    return (a[0] * b[0]) % p, (a[1] * b[1]) % p


def is_group_element(value: Any, params: ElGamalParams) -> bool:
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    if not 1 <= value < params.p:
        return False
    return pow(value, params.q, params.p) == 1


## --- discrete log ---------------------------------------------------------


def discrete_log_small(base: int, value: int, p: int, max_k: int) -> Optional[int]:
    # Simple linear search for small ranges. Use when max_k is tiny.
    cur = 1
    if value == 1:
        return 0
    for k in range(1, max_k + 1):
        cur = (cur * base) % p
        if cur == value:
            return k
    return None


def discrete_log_bsgs(base: int, value: int, p: int, max_k: int) -> Optional[int]:
    """Baby-step giant-step: find k <= max_k with base^k = value (mod p)."""
    if value == 1:
        return 0
    m = isqrt(max_k) + 1

    baby: Dict[int, int] = {}
    cur = 1
    for j in range(m):
        if cur not in baby:
            baby[cur] = j
        cur = (cur * base) % p

    base_m_inv = pow(pow(base, m, p), p - 2, p)

    gamma = value
    for i in range(ceil(max_k / m) + 1):
        if gamma in baby:
            k = i * m + baby[gamma]
            return k if k <= max_k else None
        gamma = (gamma * base_m_inv) % p
    return None


def discrete_log(base: int, value: int, p: int, max_k: int) -> Optional[int]:
    """Choose an appropriate discrete-log routine based on max_k."""
    if max_k <= 64:
        return discrete_log_small(base, value, p, max_k)
    return discrete_log_bsgs(base, value, p, max_k)


## --- verifiable decryption ------------------------------------------------


def H_int(elements: Iterable[Any], modulus: int) -> int:
    h = hashlib.sha256()
    for e in elements:
        h.update(str(e).encode())
        h.update(b"|")
    return int.from_bytes(h.digest(), "big") % modulus


def _decryption_challenge(pub: ElGamalPublicKey, c1: int, s: int, a1: int, a2: int) -> int:
    params = pub.params
    return H_int((params.p, params.g, pub.y, c1, s, a1, a2), params.q)


def decrypt_to_group(priv: ElGamalPrivateKey, c: Ciphertext) -> int:
    """Strip the mask and return g^m."""
    c1, c2 = c
    params = priv.params
    s = pow(c1, priv.x, params.p)
    s_inv = pow(s, params.p - 2, params.p)
    return (c2 * s_inv) % params.p


def decrypt_count(priv: ElGamalPrivateKey, c: Ciphertext, max_k: int) -> Optional[int]:
    """Decrypt an aggregated ciphertext and recover the integer count.

    Returns a count in [0, max_k] or None if the discrete log is out of range.
    """
    m_elem = decrypt_to_group(priv, c)
    return discrete_log(priv.params.g, m_elem, priv.params.p, max_k)


def generate_decryption_proof(
    priv: ElGamalPrivateKey, c: Ciphertext, pub: ElGamalPublicKey
) -> Dict[str, int]:
    """Chaum-Pedersen proof that s = c1^x where y = g^x.

    Returns {"c1", "s", "a1", "a2", "e", "z"}.
    """
    params = pub.params
    c1, _ = c
    x = priv.x
    s = pow(c1, x, params.p)
    t = _rand_scalar(params.q)
    a1 = pow(params.g, t, params.p)
    a2 = pow(c1, t, params.p)
    e = _decryption_challenge(pub, c1, s, a1, a2)
    z = (t - e * x) % params.q
    return {"c1": c1, "s": s, "a1": a1, "a2": a2, "e": e, "z": z}


def verify_decryption_proof(pub: ElGamalPublicKey, proof: Mapping[str, Any]) -> bool:
    params = pub.params
    fields = [proof.get(k) for k in ("c1", "s", "a1", "a2", "e", "z")]
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in fields):
        return False
    c1, s, _a1, _a2, e, z = fields
    if not (is_group_element(c1, params) and is_group_element(s, params)):
        return False
    left1 = (pow(params.g, z, params.p) * pow(pub.y, e, params.p)) % params.p
    left2 = (pow(c1, z, params.p) * pow(s, e, params.p)) % params.p
    if (left1, left2) != (proof["a1"], proof["a2"]):
        return False
    return _decryption_challenge(pub, c1, s, left1, left2) == e


def verify_decryption(
    pub: ElGamalPublicKey, c: Ciphertext, cleartext: int, proof: Mapping[str, Any]
) -> bool:
    """Check that ``cleartext`` is the decryption of ``c`` under ``pub``.

    The proof must be about this ciphertext's c1, verify as a Chaum-Pedersen
    proof, and unmask c2 to g^cleartext.
    """
    if not isinstance(cleartext, int) or isinstance(cleartext, bool) or cleartext < 0:
        return False
    if not isinstance(proof, Mapping) or proof.get("c1") != c[0]:
        return False
    if not verify_decryption_proof(pub, proof):
        return False
    params = pub.params
    s_inv = pow(proof["s"], params.p - 2, params.p)
    return (c[1] * s_inv) % params.p == pow(params.g, cleartext, params.p)


## --- capability -----------------------------------------------------------


class ElGamalCapability:
    """The encrypt / add / is_initialized capability bound to one public key."""

    def __init__(self, pub: ElGamalPublicKey):
        self.pub = pub

    def encrypt(self, plaintext: int) -> Ciphertext:
        return elgamal_encrypt(self.pub, plaintext)

    def zero(self) -> Ciphertext:
        return self.encrypt(0)

    def one(self) -> Ciphertext:
        return self.encrypt(1)

    def add(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return ciphertext_mul(a, b, self.pub.params.p)

    def is_initialized(self, handle: Any) -> bool:
        if not isinstance(handle, (tuple, list)) or len(handle) != 2:
            return False
        return all(is_group_element(v, self.pub.params) for v in handle)

    def verify_decryption(
        self, handle: Ciphertext, cleartext: int, proof: Mapping[str, Any]
    ) -> bool:
        return verify_decryption(self.pub, handle, cleartext, proof)


def encrypt_choice(
    capability: ElGamalCapability, choice_keys: Iterable[str], selected: str
) -> Dict[str, Ciphertext]:
    """Encode ``selected`` as a one-hot vector over ``choice_keys`` and encrypt it.

    Returns a mapping choice_key -> ciphertext with exactly one slot encrypting 1.
    """
    keys = list(choice_keys)
    if selected not in keys:
        raise ValueError(f"Choice '{selected}' not in allowed options.")
    return {key: capability.encrypt(1 if key == selected else 0) for key in keys}
