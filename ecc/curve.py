"""
Elliptic-Curve Group over secp256k1
===================================
Affine points with an explicit identity, the group law, double-and-add scalar
multiplication and compressed public-key encoding. Built directly on the
modular arithmetic in ``ecc.field``; no external curve library is involved.

    y² = x³ + ax + b (mod p),  a = 0, b = 7
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Dict, Optional

from ecc.field import PrimeField, mod_inverse
from exceptions import InvalidInputError

logger = logging.getLogger(__name__)

# ============================================================================
# CURVE PARAMETERS
# ============================================================================


@dataclass(frozen=True)
class CurveParameters:
    """Fixed short-Weierstrass curve constants"""
    name: str
    p: int
    a: int
    b: int
    gx: int
    gy: int
    n: int
    h: int

    @property
    def byte_length(self) -> int:
        return (self.p.bit_length() + 7) // 8


SECP256K1 = CurveParameters(
    name="secp256k1",
    p=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    a=0,
    b=7,
    gx=0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    gy=0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
    n=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    h=1,
)

CURVE = SECP256K1
FIELD = PrimeField(CURVE.p)
COORDINATE_BYTES = CURVE.byte_length

IDENTITY_SENTINEL = b"\x00"
PREFIX_EVEN = 0x02
PREFIX_ODD = 0x03
COMPRESSED_LENGTH = 1 + COORDINATE_BYTES

# ============================================================================
# POINTS
# ============================================================================


@dataclass(frozen=True)
class Point:
    """Affine curve point; (None, None) is the point at infinity"""
    x: Optional[int] = None
    y: Optional[int] = None

    def __post_init__(self):
        if (self.x is None) != (self.y is None):
            raise InvalidInputError(
                "Point needs both coordinates or neither")
        for coord in (self.x, self.y):
            if coord is not None and not FIELD.validate_element(coord):
                raise InvalidInputError("Point coordinate outside the field")

    @staticmethod
    def infinity() -> 'Point':
        return Point(None, None)

    def is_infinity(self) -> bool:
        return self.x is None

    def __repr__(self) -> str:
        if self.is_infinity():
            return "Point(Infinity)"
        return f"Point({self.x:x}, {self.y:x})"

    def to_dict(self) -> Dict[str, Optional[str]]:
        """JSON-friendly form with fixed-width hex coordinates"""
        if self.is_infinity():
            return {'x': None, 'y': None}
        width = COORDINATE_BYTES * 2
        return {'x': f"{self.x:0{width}x}", 'y': f"{self.y:0{width}x}"}

    @staticmethod
    def from_dict(data: Dict[str, Optional[str]]) -> 'Point':
        try:
            x_hex, y_hex = data['x'], data['y']
        except (KeyError, TypeError) as e:
            raise InvalidInputError(f"Malformed point: {e}")
        if x_hex is None and y_hex is None:
            return Point.infinity()
        try:
            return Point(int(x_hex, 16), int(y_hex, 16))
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Malformed point coordinates: {e}")


def get_generator() -> Point:
    return Point(CURVE.gx, CURVE.gy)


def is_on_curve(P: Point) -> bool:
    """True for the identity, otherwise checks y² ≡ x³ + ax + b (mod p)"""
    if P.is_infinity():
        return True
    left = FIELD.mul(P.y, P.y)
    right = FIELD.add(FIELD.mul(FIELD.mul(P.x, P.x), P.x),
                      FIELD.add(FIELD.mul(CURVE.a, P.x), CURVE.b))
    return left == right


def negate(P: Point) -> Point:
    """Reflection over the x-axis"""
    if P.is_infinity():
        return P
    return Point(P.x, FIELD.neg(P.y))

# ============================================================================
# GROUP LAW
# ============================================================================


def point_add(P: Point, Q: Point) -> Point:
    """
    Group addition.

        s  = (3x₁² + a) / (2y₁)          if P == Q
        s  = (y₂ - y₁) / (x₂ - x₁)       otherwise
        x₃ = s² - x₁ - x₂
        y₃ = s(x₁ - x₃) - y₁
    """
    if P.is_infinity():
        return Q
    if Q.is_infinity():
        return P

    p = CURVE.p

    # Inverse points, which also covers doubling a 2-torsion point (y = 0)
    if P.x == Q.x and (P.y + Q.y) % p == 0:
        return Point.infinity()

    if P.x == Q.x and P.y == Q.y:
        numerator = (3 * P.x * P.x + CURVE.a) % p
        denominator = (2 * P.y) % p
    else:
        numerator = (Q.y - P.y) % p
        denominator = (Q.x - P.x) % p

    s = (numerator * mod_inverse(denominator, p)) % p

    x3 = (s * s - P.x - Q.x) % p
    y3 = (s * (P.x - x3) - P.y) % p
    return Point(x3, y3)


def point_double(P: Point) -> Point:
    return point_add(P, P)


def scalar_multiply(k: int, P: Point) -> Point:
    """
    Double-and-add from the low bit upward.

    Negative k multiplies the negated point by |k|; k = 0 yields the identity.
    The scalar is not reduced modulo n, so n·P can be used as a subgroup check.
    """
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidInputError(
            f"Scalar must be an integer, got {type(k).__name__}")
    if not isinstance(P, Point):
        raise InvalidInputError("Scalar multiplication needs a Point")

    if k == 0 or P.is_infinity():
        return Point.infinity()
    if k < 0:
        k = -k
        P = negate(P)

    result = Point.infinity()
    addend = P

    while k > 0:
        if k & 1:
            result = point_add(result, addend)
        addend = point_double(addend)
        k >>= 1

    return result

# ============================================================================
# COMPRESSED ENCODING
# ============================================================================


def compress(P: Point) -> bytes:
    """Parity byte + big-endian x, or a single sentinel byte for the identity"""
    if P.is_infinity():
        return IDENTITY_SENTINEL
    prefix = PREFIX_EVEN if P.y % 2 == 0 else PREFIX_ODD
    return bytes([prefix]) + FIELD.to_bytes(P.x)


def compress_hex(P: Point) -> str:
    return compress(P).hex()


def decompress(data: bytes) -> Point:
    """
    Recover a point from its compressed form.

    y is recovered as (x³ + 7)^((p+1)/4) mod p, valid because p ≡ 3 (mod 4).
    An x with no matching y is rejected. Subgroup membership is NOT checked
    here; see ``validate_public_key``.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise InvalidInputError(
            f"Compressed key must be bytes, got {type(data).__name__}")
    data = bytes(data)

    if data == IDENTITY_SENTINEL:
        return Point.infinity()

    if len(data) != COMPRESSED_LENGTH:
        raise InvalidInputError(
            f"Compressed key must be {COMPRESSED_LENGTH} bytes, got {len(data)}")

    prefix = data[0]
    if prefix not in (PREFIX_EVEN, PREFIX_ODD):
        raise InvalidInputError(f"Unknown compression prefix 0x{prefix:02x}")

    x = FIELD.from_bytes(data[1:])
    y_squared = FIELD.add(FIELD.mul(FIELD.mul(x, x), x),
                          FIELD.add(FIELD.mul(CURVE.a, x), CURVE.b))
    try:
        y = FIELD.sqrt(y_squared)
    except InvalidInputError:
        raise InvalidInputError("Compressed key is not a point on the curve")

    if (y % 2 == 0) != (prefix == PREFIX_EVEN):
        y = FIELD.neg(y)

    return Point(x, y)


def decompress_hex(compressed: str) -> Point:
    try:
        data = bytes.fromhex(compressed)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Compressed key is not valid hex: {e}")
    return decompress(data)


def validate_public_key(P: Point) -> bool:
    """Not the identity, on the curve, and in the prime-order subgroup"""
    if P.is_infinity():
        return False
    if not is_on_curve(P):
        return False
    return scalar_multiply(CURVE.n, P).is_infinity()

# ============================================================================
# KEYS
# ============================================================================


@dataclass(frozen=True)
class KeyPair:
    """Private scalar and its public point; the scalar is kept out of repr"""
    private_key: int = field(repr=False)
    public_key: Point

    @property
    def public_key_compressed(self) -> bytes:
        return compress(self.public_key)


def _require_private_key(private_key: int) -> int:
    if isinstance(private_key, bool) or not isinstance(private_key, int):
        raise InvalidInputError("Private key must be an integer")
    if not 1 <= private_key < CURVE.n:
        raise InvalidInputError("Private key out of range [1, n-1]")
    return private_key


def generate_private_key() -> int:
    """32 random bytes reduced into [1, n-1]"""
    raw = int.from_bytes(secrets.token_bytes(32), 'big')
    return raw % (CURVE.n - 1) + 1


def generate_public_key(private_key: int) -> Point:
    _require_private_key(private_key)
    return scalar_multiply(private_key, get_generator())


def generate_key_pair() -> KeyPair:
    private_key = generate_private_key()
    return KeyPair(private_key=private_key,
                   public_key=generate_public_key(private_key))


def key_pair_from_private_key(private_key: int) -> KeyPair:
    return KeyPair(private_key=_require_private_key(private_key),
                   public_key=generate_public_key(private_key))


def private_key_to_hex(private_key: int) -> str:
    """Fixed-width hex for local key storage; never put this on the wire"""
    _require_private_key(private_key)
    return f"{private_key:0{COORDINATE_BYTES * 2}x}"


def private_key_from_hex(hex_key: str) -> int:
    try:
        value = int(hex_key, 16)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Private key is not valid hex: {e}")
    return _require_private_key(value)
