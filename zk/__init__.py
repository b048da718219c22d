"""
Zero-Knowledge Authentication Module for the Voter Authentication Core
Interactive graph-isomorphism proof with a verifier session state machine
"""

from .graph import (
    # Graph model
    Graph,
    graph_hash,
    derive_secret_graph,
    derive_secret_graph_from_text,
    graph_commitment,

    # Permutations
    random_permutation,
    inverse_permutation,
    compose_permutations,
    validate_permutation,
    apply_permutation,
    is_isomorphic_via,
)
from .graph_isomorphism import (
    # Protocol
    ZKPProver,
    ZKPVerifier,
    create_prover,

    # Data types
    Commitment,
    Challenge,
    ChallengeResponse,
    RoundRecord,
    RoundOutcome,
    ZKPSession,
    ZKPSessionState,
)

__version__ = "1.0.0"

__all__ = [
    # Graph model
    'Graph',
    'graph_hash',
    'derive_secret_graph',
    'derive_secret_graph_from_text',
    'graph_commitment',
    'random_permutation',
    'inverse_permutation',
    'compose_permutations',
    'validate_permutation',
    'apply_permutation',
    'is_isomorphic_via',

    # Protocol
    'ZKPProver',
    'ZKPVerifier',
    'create_prover',
    'Commitment',
    'Challenge',
    'ChallengeResponse',
    'RoundRecord',
    'RoundOutcome',
    'ZKPSession',
    'ZKPSessionState',
]
