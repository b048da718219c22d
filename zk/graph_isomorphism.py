"""
Graph-Isomorphism Authentication Protocol
=========================================
Interactive multi-round proof that the prover knows the secret graph whose
hash was registered, without ever sending the seed that generates it.

Each round:

1. Prover draws a fresh permutation π and commits to H = π(G).
2. Verifier records H and challenges a uniformly random node c of H.
3. Prover reveals G and π.
4. Verifier accepts the round iff hash(G) is the registered commitment, the
   prover answered the node that was actually issued, and the neighbours of
   π⁻¹(c) in G, mapped through π, are exactly the neighbours of c in H.

Rounds never abort early: a failed round is recorded and the session runs to
``max_rounds``; it succeeds only if every round verified.

Disclosure note: the response carries the full original graph, so this mode
is compatible with existing registrations but is NOT zero-knowledge across
sessions. An observer of one transcript learns G.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives import constant_time

from config.config import ZKPConfig
from exceptions import InvalidInputError, SessionExpiredError
from utils.session_store import SessionStore
from zk.graph import (
    Graph,
    Permutation,
    DEFAULT_NUM_NODES,
    apply_permutation,
    derive_secret_graph,
    graph_hash,
    inverse_permutation,
    random_permutation,
    validate_permutation,
)

logger = logging.getLogger(__name__)

# ============================================================================
# DATA TYPES
# ============================================================================


class ZKPSessionState(Enum):
    CREATED = "created"
    COMMITTED = "committed"
    CHALLENGED = "challenged"
    VERIFIED = "verified"
    COMPLETE = "complete"
    EXPIRED = "expired"


@dataclass
class Commitment:
    """Prover's per-round commitment"""
    graph: Graph
    hash_hex: str


@dataclass
class ChallengeResponse:
    """Prover's answer to a challenge (full disclosure of G and π)"""
    original_graph: Graph
    permutation: Permutation
    challenge_node: int


@dataclass
class Challenge:
    challenge_node: int
    round: int


@dataclass
class RoundRecord:
    commitment_hash: str
    permuted_graph: Graph
    challenge_node: int
    issued_at: float
    verified: bool = False
    answered: bool = False


@dataclass
class RoundOutcome:
    valid: bool
    round: int
    rounds_remaining: int


@dataclass
class ZKPSession:
    session_id: str
    registered_commitment_hash: str
    num_nodes: int
    max_rounds: int
    rounds: List[RoundRecord] = field(default_factory=list)
    current_round: int = 0
    state: ZKPSessionState = ZKPSessionState.CREATED
    created_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None

    @property
    def rounds_remaining(self) -> int:
        return self.max_rounds - self.current_round

    @property
    def is_complete(self) -> bool:
        return self.current_round >= self.max_rounds

    @property
    def success(self) -> bool:
        return self.is_complete and all(r.verified for r in self.rounds)

    def status(self) -> Dict[str, Any]:
        return {
            'complete': self.is_complete,
            'success': self.success,
            'rounds': self.current_round,
        }

# ============================================================================
# PROVER
# ============================================================================


class ZKPProver:
    """Holds the secret graph and the permutation of the round in flight"""

    def __init__(self, secret_graph: Graph):
        self.secret_graph = secret_graph
        self._pending_permutation: Optional[Permutation] = None

    @property
    def num_nodes(self) -> int:
        return self.secret_graph.num_nodes

    @property
    def registered_hash(self) -> str:
        return graph_hash(self.secret_graph)

    def create_commitment(self) -> Commitment:
        permutation = random_permutation(self.secret_graph.num_nodes)
        permuted = apply_permutation(self.secret_graph, permutation)
        self._pending_permutation = permutation
        return Commitment(graph=permuted, hash_hex=graph_hash(permuted))

    def respond_to_challenge(self, challenge_node: int) -> ChallengeResponse:
        if self._pending_permutation is None:
            raise InvalidInputError("No commitment awaiting a challenge")
        permutation, self._pending_permutation = self._pending_permutation, None
        return ChallengeResponse(original_graph=self.secret_graph.copy(),
                                 permutation=permutation,
                                 challenge_node=challenge_node)


def create_prover(seed: bytes, num_nodes: int = DEFAULT_NUM_NODES) -> ZKPProver:
    return ZKPProver(derive_secret_graph(seed, num_nodes))

# ============================================================================
# VERIFIER
# ============================================================================


class ZKPVerifier:
    """
    Verifier-side state machine over a ``SessionStore`` of ``ZKPSession``.

    All mutation of one session goes through ``store.exclusive`` so two
    flows can never interleave on the same session.
    """

    def __init__(self, store: Optional[SessionStore] = None,
                 config: Optional[ZKPConfig] = None):
        self.config = config or ZKPConfig()
        self.store = store if store is not None else SessionStore()

    def _now(self) -> float:
        return self.store.clock()

    def start_session(self, session_id: str, registered_commitment_hash: str,
                      num_nodes: Optional[int] = None) -> Dict[str, Any]:
        if not isinstance(registered_commitment_hash, str) or len(registered_commitment_hash) != 64:
            raise InvalidInputError("Registered commitment must be a 64-char hex digest")
        try:
            bytes.fromhex(registered_commitment_hash)
        except ValueError:
            raise InvalidInputError("Registered commitment is not valid hex")
        if num_nodes is None:
            num_nodes = self.config.num_nodes
        if isinstance(num_nodes, bool) or not isinstance(num_nodes, int) or num_nodes < 2:
            raise InvalidInputError("Sessions need graphs of at least 2 nodes")

        session = ZKPSession(
            session_id=session_id,
            registered_commitment_hash=registered_commitment_hash.lower(),
            num_nodes=num_nodes,
            max_rounds=self.config.max_rounds,
            created_at=self._now(),
        )
        self.store.insert(session_id, session)
        logger.info(
            f"ZKP session {session_id} started ({session.max_rounds} rounds)")
        return {'sessionId': session_id, 'maxRounds': session.max_rounds}

    def get_session(self, session_id: str) -> ZKPSession:
        session = self.store.get(session_id)
        if session.state == ZKPSessionState.EXPIRED:
            raise SessionExpiredError(f"Session {session_id} expired")
        return session

    def generate_challenge(self, session_id: str, permuted_graph: Any) -> Challenge:
        """Record the round commitment and issue a uniformly random node"""
        with self.store.exclusive(session_id) as session:
            self._require_live(session)
            if session.state == ZKPSessionState.CHALLENGED:
                raise InvalidInputError(
                    "Previous challenge has not been answered")
            if session.is_complete:
                raise InvalidInputError("All rounds already completed")

            committed = Graph.from_matrix(permuted_graph,
                                          expected_nodes=session.num_nodes)
            session.state = ZKPSessionState.COMMITTED

            challenge_node = secrets.randbelow(session.num_nodes)
            session.rounds.append(RoundRecord(
                commitment_hash=graph_hash(committed),
                permuted_graph=committed,
                challenge_node=challenge_node,
                issued_at=self._now(),
            ))
            session.state = ZKPSessionState.CHALLENGED

            logger.debug(
                f"Session {session_id} round {session.current_round}: challenge issued")
            return Challenge(challenge_node=challenge_node,
                             round=session.current_round)

    def verify_response(self, session_id: str, original_graph: Any,
                        permutation: Any, challenge_node: Any) -> RoundOutcome:
        with self.store.exclusive(session_id) as session:
            self._require_live(session)
            if session.state != ZKPSessionState.CHALLENGED:
                raise InvalidInputError("No challenge outstanding for this session")

            record = session.rounds[session.current_round]
            if self._now() - record.issued_at > self.config.round_timeout_seconds:
                session.state = ZKPSessionState.EXPIRED
                logger.warning(
                    f"Session {session_id} round {session.current_round} timed out")
                raise SessionExpiredError(
                    f"Response for session {session_id} arrived too late")

            # Malformed input is rejected before the round is consumed
            original = Graph.from_matrix(original_graph,
                                         expected_nodes=session.num_nodes)
            perm = validate_permutation(permutation, session.num_nodes)
            if isinstance(challenge_node, bool) or not isinstance(challenge_node, int):
                raise InvalidInputError("Challenge node must be an integer")

            valid = self._check_round(session, record, original, perm,
                                      challenge_node)

            record.verified = valid
            record.answered = True
            round_index = session.current_round
            session.current_round += 1

            if session.is_complete:
                session.state = ZKPSessionState.COMPLETE
                session.completed_at = self._now()
                logger.info(
                    f"ZKP session {session_id} complete: "
                    f"{'authenticated' if session.success else 'rejected'}")
            else:
                session.state = ZKPSessionState.VERIFIED

            return RoundOutcome(valid=valid, round=round_index,
                                rounds_remaining=session.rounds_remaining)

    @staticmethod
    def _check_round(session: ZKPSession, record: RoundRecord, original: Graph,
                     perm: Permutation, claimed_node: int) -> bool:
        hash_matches = constant_time.bytes_eq(
            graph_hash(original).encode(),
            session.registered_commitment_hash.encode())
        node_matches = claimed_node == record.challenge_node

        c = record.challenge_node
        preimage = inverse_permutation(perm)[c]
        mapped = {perm[m] for m in original.get_neighbors(preimage)}
        committed = set(record.permuted_graph.get_neighbors(c))

        return hash_matches and node_matches and mapped == committed

    def is_complete(self, session_id: str) -> Dict[str, Any]:
        return self.get_session(session_id).status()

    def end_session(self, session_id: str) -> Dict[str, Any]:
        """Final status; the session is removed whatever its state"""
        session = self.store.get(session_id)
        result = session.status()
        self.store.remove(session_id)
        logger.info(f"ZKP session {session_id} ended")
        return result

    @staticmethod
    def _require_live(session: ZKPSession):
        if session.state == ZKPSessionState.EXPIRED:
            raise SessionExpiredError(f"Session {session.session_id} expired")
        if session.state == ZKPSessionState.COMPLETE:
            raise InvalidInputError(f"Session {session.session_id} already complete")
