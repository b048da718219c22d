"""
Elliptic-Curve Module for the Voter Authentication Core
secp256k1 group arithmetic built on raw modular arithmetic
"""

from .field import (
    PrimeField,
    mod,
    extended_gcd,
    mod_inverse,
    mod_pow,
)
from .curve import (
    # Parameters
    CurveParameters,
    SECP256K1,

    # Points and keys
    Point,
    KeyPair,
    get_generator,

    # Group law
    is_on_curve,
    negate,
    point_add,
    point_double,
    scalar_multiply,

    # Encoding
    compress,
    compress_hex,
    decompress,
    decompress_hex,
    validate_public_key,

    # Key generation
    generate_private_key,
    generate_public_key,
    generate_key_pair,
    key_pair_from_private_key,
    private_key_to_hex,
    private_key_from_hex,
)

__version__ = "1.0.0"

__all__ = [
    'PrimeField',
    'mod',
    'extended_gcd',
    'mod_inverse',
    'mod_pow',

    'CurveParameters',
    'SECP256K1',
    'Point',
    'KeyPair',
    'get_generator',
    'is_on_curve',
    'negate',
    'point_add',
    'point_double',
    'scalar_multiply',
    'compress',
    'compress_hex',
    'decompress',
    'decompress_hex',
    'validate_public_key',
    'generate_private_key',
    'generate_public_key',
    'generate_key_pair',
    'key_pair_from_private_key',
    'private_key_to_hex',
    'private_key_from_hex',
]
