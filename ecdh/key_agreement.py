"""
ECDH Key Agreement
==================
Elliptic-curve Diffie-Hellman on secp256k1 using the in-house group
arithmetic. Each ``ECDHSession`` owns one ephemeral key pair and is keyed at
most once; the 32-byte session key is SHA-256 over the shared x-coordinate.
"""

import logging
import time
from typing import Optional

from cryptography.hazmat.primitives import hashes

from ecc.curve import (
    CURVE,
    COORDINATE_BYTES,
    KeyPair,
    Point,
    compress,
    decompress,
    decompress_hex,
    generate_key_pair,
    is_on_curve,
    scalar_multiply,
    validate_public_key,
)
from exceptions import InvalidInputError, KeyNotDerivedError

logger = logging.getLogger(__name__)

SESSION_KEY_LENGTH = 32

# ============================================================================
# PRIMITIVES
# ============================================================================


def compute_shared_secret(our_private_key: int, their_public_key: Point,
                          verify_subgroup: bool = True) -> int:
    """
    x-coordinate of d·Q.

    The peer point must be a non-identity curve point; with ``verify_subgroup``
    it must also satisfy n·Q = O.
    """
    if isinstance(our_private_key, bool) or not isinstance(our_private_key, int):
        raise InvalidInputError("Private key must be an integer")
    if not 1 <= our_private_key < CURVE.n:
        raise InvalidInputError("Private key out of range [1, n-1]")
    if not isinstance(their_public_key, Point) or their_public_key.is_infinity():
        raise InvalidInputError("Peer public key must be a non-identity point")

    if verify_subgroup:
        if not validate_public_key(their_public_key):
            raise InvalidInputError("Peer public key failed validation")
    elif not is_on_curve(their_public_key):
        raise InvalidInputError("Peer public key is not on the curve")

    shared = scalar_multiply(our_private_key, their_public_key)
    if shared.is_infinity():
        raise InvalidInputError("Shared point is the point at infinity")
    return shared.x


def derive_session_key(secret: int) -> bytes:
    """SHA-256 over the 32-byte big-endian encoding of the shared secret"""
    if isinstance(secret, bool) or not isinstance(secret, int):
        raise InvalidInputError("Shared secret must be an integer")
    if not 0 <= secret < CURVE.p:
        raise InvalidInputError("Shared secret outside the field")

    digest = hashes.Hash(hashes.SHA256())
    digest.update(secret.to_bytes(COORDINATE_BYTES, 'big'))
    return digest.finalize()


def perform_ecdh(private_key: int, public_key: Point,
                 verify_subgroup: bool = True) -> bytes:
    secret = compute_shared_secret(private_key, public_key, verify_subgroup)
    return derive_session_key(secret)


def generate_ephemeral_key_pair() -> KeyPair:
    return generate_key_pair()

# ============================================================================
# SESSION
# ============================================================================


class ECDHSession:
    """One side of a key agreement: ephemeral key pair plus the derived key"""

    def __init__(self, session_id: Optional[str] = None,
                 key_pair: Optional[KeyPair] = None,
                 verify_peer_subgroup: bool = True):
        self.session_id = session_id
        self.key_pair = key_pair or generate_ephemeral_key_pair()
        self.verify_peer_subgroup = verify_peer_subgroup
        self.remote_public_key: Optional[Point] = None
        self._session_key: Optional[bytes] = None
        self.created_at = time.time()
        self.keyed_at: Optional[float] = None

    def __repr__(self) -> str:
        return (f"ECDHSession(session_id={self.session_id!r}, "
                f"keyed={self.is_keyed})")

    @property
    def public_key(self) -> Point:
        return self.key_pair.public_key

    @property
    def public_key_compressed(self) -> bytes:
        return compress(self.key_pair.public_key)

    @property
    def is_keyed(self) -> bool:
        return self._session_key is not None

    def set_remote_public_key(self, compressed: bytes) -> None:
        """Decompress the peer key and derive the session key"""
        self._key_with(decompress(compressed))

    def set_remote_public_key_hex(self, compressed_hex: str) -> None:
        self._key_with(decompress_hex(compressed_hex))

    def set_remote_point(self, point: Point) -> None:
        self._key_with(point)

    def _key_with(self, point: Point) -> None:
        if self.is_keyed:
            raise InvalidInputError("ECDH session is already keyed")

        session_key = perform_ecdh(self.key_pair.private_key, point,
                                   self.verify_peer_subgroup)
        self.remote_public_key = point
        self._session_key = session_key
        self.keyed_at = time.time()
        logger.debug(f"ECDH session {self.session_id} keyed")

    @property
    def session_key(self) -> bytes:
        if self._session_key is None:
            raise KeyNotDerivedError(
                "Session key requested before key agreement completed")
        return self._session_key

    def get_session_key(self) -> bytes:
        return self.session_key
