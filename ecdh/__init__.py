"""
ECDH Module for the Voter Authentication Core
"""

from .key_agreement import (
    ECDHSession,
    compute_shared_secret,
    derive_session_key,
    perform_ecdh,
    generate_ephemeral_key_pair,
    SESSION_KEY_LENGTH,
)

__version__ = "1.0.0"

__all__ = [
    'ECDHSession',
    'compute_shared_secret',
    'derive_session_key',
    'perform_ecdh',
    'generate_ephemeral_key_pair',
    'SESSION_KEY_LENGTH',
]
