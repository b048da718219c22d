"""
Finite-Field Arithmetic
=======================
Modular reduction, extended-Euclid inverse and fixed-structure modular
exponentiation over Python integers. Everything here is pure and stateless.
"""

import logging
import secrets
from typing import Tuple

from exceptions import InvalidInputError, NoInverseError

logger = logging.getLogger(__name__)


def _require_int(value, name: str) -> int:
    # bool is an int subclass but never a meaningful field value
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(
            f"{name} must be an integer, got {type(value).__name__}")
    return value


def _require_modulus(m) -> int:
    _require_int(m, "modulus")
    if m <= 0:
        raise InvalidInputError(f"Modulus must be positive, got {m}")
    return m


def mod(a: int, m: int) -> int:
    """Reduce a into [0, m) regardless of the sign of a"""
    _require_int(a, "value")
    _require_modulus(m)
    result = a % m
    return result + m if result < 0 else result


def extended_gcd(a: int, b: int) -> Tuple[int, int, int]:
    """Iterative extended Euclid: returns (g, x, y) with a*x + b*y == g"""
    _require_int(a, "a")
    _require_int(b, "b")

    old_r, r = a, b
    old_x, x = 1, 0
    old_y, y = 0, 1

    while r != 0:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_x, x = x, old_x - q * x
        old_y, y = y, old_y - q * y

    if old_r < 0:
        old_r, old_x, old_y = -old_r, -old_x, -old_y

    return old_r, old_x, old_y


def mod_inverse(a: int, m: int) -> int:
    """Modular inverse of a mod m; raises NoInverseError when gcd(a, m) != 1"""
    _require_modulus(m)
    if m == 1:
        raise InvalidInputError("Modulus 1 has no multiplicative group")

    a = mod(a, m)
    if a == 0:
        raise NoInverseError(f"0 has no inverse modulo {m}")

    g, x, _ = extended_gcd(a, m)
    if g != 1:
        raise NoInverseError(f"Modular inverse does not exist (gcd={g})")
    return mod(x, m)


def mod_pow(base: int, exp: int, m: int, bit_width: int = 0) -> int:
    """
    Montgomery-ladder modular exponentiation.

    Every iteration performs one multiplication and one squaring; the exponent
    bit only selects which register receives which result. ``bit_width`` pads
    the loop to a fixed length so the iteration count does not depend on the
    exponent's leading zero bits.
    """
    _require_int(base, "base")
    _require_int(exp, "exponent")
    _require_modulus(m)
    if exp < 0:
        raise InvalidInputError("Exponent must be non-negative")

    registers = [1, mod(base, m)]
    bits = max(exp.bit_length(), bit_width)

    for i in reversed(range(bits)):
        bit = (exp >> i) & 1
        registers[1 - bit] = (registers[0] * registers[1]) % m
        registers[bit] = (registers[bit] * registers[bit]) % m

    return registers[0] % m


class PrimeField:
    """Arithmetic in GF(p) bound to a single prime modulus"""

    def __init__(self, modulus: int):
        _require_modulus(modulus)
        if modulus < 3:
            raise InvalidInputError("Prime field modulus must be at least 3")
        self.modulus = modulus
        self.byte_length = (modulus.bit_length() + 7) // 8

    def __repr__(self) -> str:
        return f"PrimeField(0x{self.modulus:x})"

    def validate_element(self, element: int) -> bool:
        """Check element is a canonical field representative"""
        return (not isinstance(element, bool) and isinstance(element, int)
                and 0 <= element < self.modulus)

    def reduce(self, value: int) -> int:
        return mod(value, self.modulus)

    def add(self, a: int, b: int) -> int:
        return (a + b) % self.modulus

    def sub(self, a: int, b: int) -> int:
        return (a - b) % self.modulus

    def mul(self, a: int, b: int) -> int:
        return (a * b) % self.modulus

    def neg(self, a: int) -> int:
        return (-a) % self.modulus

    def inv(self, a: int) -> int:
        return mod_inverse(a, self.modulus)

    def div(self, a: int, b: int) -> int:
        return (a * self.inv(b)) % self.modulus

    def pow(self, base: int, exp: int) -> int:
        return mod_pow(base, exp, self.modulus,
                       bit_width=self.modulus.bit_length())

    def sqrt(self, a: int) -> int:
        """
        Square root for p ≡ 3 (mod 4): a^((p+1)/4).

        Raises InvalidInputError when a is not a quadratic residue.
        """
        if self.modulus % 4 != 3:
            raise InvalidInputError(
                "Direct square root requires p ≡ 3 (mod 4)")
        a = self.reduce(a)
        root = self.pow(a, (self.modulus + 1) // 4)
        if (root * root) % self.modulus != a:
            raise InvalidInputError("Value is not a quadratic residue")
        return root

    def secure_random_element(self) -> int:
        """Uniform random element using OS randomness"""
        return secrets.randbelow(self.modulus)

    def to_bytes(self, element: int) -> bytes:
        """Fixed-width big-endian encoding"""
        if not self.validate_element(element):
            raise InvalidInputError("Field element out of range")
        return element.to_bytes(self.byte_length, 'big')

    def from_bytes(self, data: bytes) -> int:
        if len(data) != self.byte_length:
            raise InvalidInputError(
                f"Field element must be {self.byte_length} bytes, got {len(data)}")
        value = int.from_bytes(data, 'big')
        if value >= self.modulus:
            raise InvalidInputError("Field element not reduced")
        return value
