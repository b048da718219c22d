#!/usr/bin/env python3
"""
Integrated Voter Authentication System
======================================
Verifier-side service combining the three core layers for one voting center:

1. Registration: a prover publishes its compressed public key and the hash of
   its secret graph.
2. ECDH: an ephemeral key agreement per session yields a 32-byte session key
   on each side that never travels on the wire.
3. ZKP: a multi-round graph-isomorphism proof that the prover holds the
   graph behind the registered hash.

Only coarse outcomes leave the service. Callers see whether a round and the
session passed, never which check failed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from config.config import SystemConfig
from ecc.curve import (
    KeyPair,
    compress,
    decompress,
    generate_key_pair,
    validate_public_key,
)
from ecdh.key_agreement import ECDHSession
from exceptions import (
    InvalidInputError,
    KeyNotDerivedError,
    ProverNotRegisteredError,
    SessionExpiredError,
)
from protocol.messages import (
    ChallengeMessage,
    CommitmentMessage,
    HandshakeMessage,
    RegistrationMessage,
    ResponseMessage,
    RoundResultMessage,
)
from utils.session_store import SessionStore
from utils.utils import generate_session_id
from zk.graph import DEFAULT_NUM_NODES
from zk.graph_isomorphism import ZKPProver, ZKPVerifier, create_prover

logger = logging.getLogger(__name__)

# ============================================================================
# STATE
# ============================================================================


@dataclass
class ProverRecord:
    """Registered prover identity"""
    prover_id: str
    public_key_hex: str
    graph_commitment_hash: str
    registration_time: float = field(default_factory=time.time)


@dataclass
class AuthSession:
    """One authentication attempt: ECDH handshake then ZKP rounds"""
    session_id: str
    prover_id: str
    graph_commitment_hash: str
    ecdh: ECDHSession
    zkp_started: bool = False
    authenticated: Optional[bool] = None
    state: str = "handshake"

    def status(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'proverId': self.prover_id,
            'state': self.state,
            'keyed': self.ecdh.is_keyed,
            'zkpStarted': self.zkp_started,
            'authenticated': bool(self.authenticated),
        }


def _key_hex(public_key_compressed: bytes) -> str:
    if not isinstance(public_key_compressed, (bytes, bytearray)):
        raise InvalidInputError("Public key must be bytes")
    return bytes(public_key_compressed).hex()


def _require_message(message: Any, message_type: type):
    if not isinstance(message, message_type):
        raise InvalidInputError(
            f"Expected {message_type.__name__}; build it with from_dict first")

# ============================================================================
# INTEGRATED AUTHENTICATION SYSTEM
# ============================================================================


class IntegratedAuthSystem:
    """
    Voting-center verifier.

    Curve arithmetic (key validation, key generation and agreement) runs in
    worker threads so one session's handshake never stalls the event loop.
    """

    def __init__(self, config: Optional[SystemConfig] = None,
                 center_id: str = "center_1",
                 clock: Callable[[], float] = time.time):
        self.config = config or SystemConfig()
        self.center_id = center_id

        logger.info(f" Initializing authentication system for {center_id}...")

        session_config = self.config.session_config
        self.sessions: SessionStore[AuthSession] = SessionStore(
            max_sessions=session_config.max_concurrent_sessions,
            session_timeout_seconds=session_config.session_timeout_seconds,
            clock=clock)
        self.zkp_verifier = ZKPVerifier(
            SessionStore(
                max_sessions=session_config.max_concurrent_sessions,
                session_timeout_seconds=session_config.session_timeout_seconds,
                clock=clock),
            self.config.zkp_config)

        self.provers: Dict[str, ProverRecord] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

        self.stats = {
            'sessions_started': 0,
            'authentications_succeeded': 0,
            'authentications_failed': 0,
            'sessions_expired': 0,
        }

        logger.info(
            f" Authentication system ready "
            f"({self.config.zkp_config.max_rounds} rounds, "
            f"{self.config.zkp_config.num_nodes}-node graphs)")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register_prover(self, registration: RegistrationMessage) -> str:
        _require_message(registration, RegistrationMessage)

        point = decompress(registration.public_key_compressed)
        if not await asyncio.to_thread(validate_public_key, point):
            raise InvalidInputError("Registration public key failed validation")

        key_hex = registration.public_key_compressed.hex()
        async with self._lock:
            if key_hex in self.provers:
                raise InvalidInputError("Public key already registered")

            prover_id = generate_session_id("prover", 16)
            self.provers[key_hex] = ProverRecord(
                prover_id=prover_id,
                public_key_hex=key_hex,
                graph_commitment_hash=registration.graph_commitment_hash,
            )

        logger.info(f" Registered prover {prover_id}")
        return prover_id

    def is_registered(self, public_key_compressed: bytes) -> bool:
        return _key_hex(public_key_compressed) in self.provers

    # ------------------------------------------------------------------
    # ECDH handshake
    # ------------------------------------------------------------------

    async def start_session(self, public_key_compressed: bytes) -> Dict[str, Any]:
        key_hex = _key_hex(public_key_compressed)
        record = self.provers.get(key_hex)
        if record is None:
            raise ProverNotRegisteredError("No registration for this public key")

        session_id = generate_session_id()
        ecdh = await asyncio.to_thread(
            ECDHSession, session_id, None,
            self.config.ecdh_config.verify_peer_subgroup)

        self.sessions.insert(session_id, AuthSession(
            session_id=session_id,
            prover_id=record.prover_id,
            graph_commitment_hash=record.graph_commitment_hash,
            ecdh=ecdh,
        ))
        self.stats['sessions_started'] += 1

        logger.info(f" Session {session_id} started for {record.prover_id}")
        return {
            'sessionId': session_id,
            'centerPublicKey': ecdh.public_key_compressed.hex(),
            'proverId': record.prover_id,
        }

    async def start_session_hex(self, public_key_hex: str) -> Dict[str, Any]:
        """start_session for callers holding the key as a hex string"""
        try:
            public_key_compressed = bytes.fromhex(public_key_hex)
        except (TypeError, ValueError):
            raise InvalidInputError("Public key is not valid hex")
        return await self.start_session(public_key_compressed)

    async def complete_ecdh(self, handshake: HandshakeMessage) -> Dict[str, Any]:
        _require_message(handshake, HandshakeMessage)

        with self.sessions.exclusive(handshake.session_id) as auth:
            await asyncio.to_thread(auth.ecdh.set_remote_public_key,
                                    handshake.peer_public_key_compressed)
            auth.state = "keyed"

        logger.info(f"  ✓ Session {handshake.session_id} keyed")
        return {'sessionId': handshake.session_id, 'keyed': True}

    # ------------------------------------------------------------------
    # ZKP rounds
    # ------------------------------------------------------------------

    async def start_zkp(self, session_id: str) -> Dict[str, Any]:
        with self.sessions.exclusive(session_id) as auth:
            if not auth.ecdh.is_keyed:
                raise KeyNotDerivedError(
                    "Key agreement must complete before authentication")
            if auth.zkp_started:
                raise InvalidInputError("Authentication already started")

            result = self.zkp_verifier.start_session(
                session_id, auth.graph_commitment_hash)
            auth.zkp_started = True
            auth.state = "proving"

        return {'sessionId': session_id, 'maxRounds': result['maxRounds']}

    async def submit_commitment(self, commitment: CommitmentMessage) -> ChallengeMessage:
        _require_message(commitment, CommitmentMessage)

        try:
            self._require_proving(commitment.session_id)
            challenge = self.zkp_verifier.generate_challenge(
                commitment.session_id,
                commitment.permuted_graph_adjacency_matrix)
        except SessionExpiredError:
            self._expire(commitment.session_id)
            raise

        return ChallengeMessage(challenge_node=challenge.challenge_node,
                                round=challenge.round)

    async def submit_response(self, response: ResponseMessage) -> RoundResultMessage:
        _require_message(response, ResponseMessage)

        session_id = response.session_id
        try:
            auth = self._require_proving(session_id)
            outcome = self.zkp_verifier.verify_response(
                session_id,
                response.original_graph_adjacency_matrix,
                response.permutation,
                response.challenge_node)
        except SessionExpiredError:
            self._expire(session_id)
            raise

        status = self.zkp_verifier.is_complete(session_id)
        if status['complete']:
            self.zkp_verifier.end_session(session_id)
            auth.authenticated = status['success']
            auth.state = "authenticated" if status['success'] else "failed"
            if status['success']:
                self.stats['authentications_succeeded'] += 1
            else:
                self.stats['authentications_failed'] += 1
            logger.info(f" Session {session_id}: {auth.state}")

        return RoundResultMessage(
            round_valid=outcome.valid,
            rounds_remaining=outcome.rounds_remaining,
            complete=status['complete'],
            authenticated=status['complete'] and status['success'],
        )

    def _require_proving(self, session_id: str) -> AuthSession:
        auth = self.sessions.get(session_id)
        if not auth.zkp_started:
            raise InvalidInputError("Authentication has not been started")
        if auth.authenticated is not None:
            raise InvalidInputError("Authentication already finished")
        return auth

    def _expire(self, session_id: str):
        self.zkp_verifier.store.remove(session_id)
        auth = self.sessions.remove(session_id)
        if auth is not None:
            auth.state = "expired"
        self.stats['sessions_expired'] += 1
        logger.warning(f" Session {session_id} expired during authentication")

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def get_session_key(self, session_id: str) -> bytes:
        return self.sessions.get(session_id).ecdh.session_key

    def session_status(self, session_id: str) -> Dict[str, Any]:
        return self.sessions.get(session_id).status()

    def end_session(self, session_id: str) -> bool:
        """Tear down one session; other sessions are untouched"""
        self.zkp_verifier.store.remove(session_id)
        removed = self.sessions.remove(session_id) is not None
        if removed:
            logger.info(f" Session {session_id} ended")
        return removed

    def sweep_expired(self) -> int:
        cleaned = self.sessions.sweep_expired()
        self.zkp_verifier.store.sweep_expired()
        # ZKP state without a parent session is orphaned
        for session_id in self.zkp_verifier.store.session_ids():
            if session_id not in self.sessions:
                self.zkp_verifier.store.remove(session_id)
        self.stats['sessions_expired'] += cleaned
        return cleaned

    async def _cleanup_loop(self, interval_seconds: float):
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep_expired()

    def start_background_cleanup(self):
        """Periodically sweep expired sessions on the running loop"""
        if self._cleanup_task is None or self._cleanup_task.done():
            interval = self.config.session_config.cleanup_interval_minutes * 60
            self._cleanup_task = asyncio.create_task(
                self._cleanup_loop(interval))

    async def shutdown(self):
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        logger.info(f" Authentication system for {self.center_id} shut down")

    def get_system_metrics(self) -> Dict[str, Any]:
        return {
            'center_id': self.center_id,
            'registered_provers': len(self.provers),
            'active_sessions': len(self.sessions),
            'active_zkp_sessions': len(self.zkp_verifier.store),
            'max_rounds': self.config.zkp_config.max_rounds,
            'num_nodes': self.config.zkp_config.num_nodes,
            **self.stats,
        }

# ============================================================================
# PROVER CLIENT
# ============================================================================


@dataclass
class AuthenticationResult:
    session_id: str
    authenticated: bool
    rounds: int
    session_key: bytes = field(repr=False, default=b"")


class ProverClient:
    """
    Prover side of the exchange.

    Holds the secret seed locally; only the public key, the commitment hash
    and per-round messages ever reach the verifier.
    """

    def __init__(self, seed: bytes, num_nodes: int = DEFAULT_NUM_NODES,
                 identity_key: Optional[KeyPair] = None):
        self.prover: ZKPProver = create_prover(seed, num_nodes)
        self.identity_key = identity_key or generate_key_pair()

    @property
    def public_key_compressed(self) -> bytes:
        return compress(self.identity_key.public_key)

    def registration_message(self) -> RegistrationMessage:
        return RegistrationMessage(
            public_key_compressed=self.public_key_compressed,
            graph_commitment_hash=self.prover.registered_hash,
        )

    async def handshake(self, system: IntegratedAuthSystem) -> ECDHSession:
        started = await system.start_session(self.public_key_compressed)
        session_id = started['sessionId']

        ecdh = await asyncio.to_thread(ECDHSession, session_id)
        await asyncio.to_thread(ecdh.set_remote_public_key_hex,
                                started['centerPublicKey'])
        await system.complete_ecdh(HandshakeMessage(
            session_id=session_id,
            peer_public_key_compressed=ecdh.public_key_compressed))
        return ecdh

    async def run_round(self, system: IntegratedAuthSystem, session_id: str) -> RoundResultMessage:
        commitment = self.prover.create_commitment()
        challenge = await system.submit_commitment(CommitmentMessage(
            session_id=session_id,
            permuted_graph_adjacency_matrix=commitment.graph.to_matrix()))

        answer = self.prover.respond_to_challenge(challenge.challenge_node)
        return await system.submit_response(ResponseMessage(
            session_id=session_id,
            original_graph_adjacency_matrix=answer.original_graph.to_matrix(),
            permutation=answer.permutation,
            challenge_node=answer.challenge_node))

    async def authenticate(self, system: IntegratedAuthSystem) -> AuthenticationResult:
        """Handshake followed by every ZKP round the verifier asks for"""
        ecdh = await self.handshake(system)
        session_id = ecdh.session_id

        started = await system.start_zkp(session_id)
        result = None
        rounds = 0
        for _ in range(started['maxRounds']):
            result = await self.run_round(system, session_id)
            rounds += 1
            if result.complete:
                break

        authenticated = bool(result and result.complete and result.authenticated)
        return AuthenticationResult(session_id=session_id,
                                    authenticated=authenticated,
                                    rounds=rounds,
                                    session_key=ecdh.session_key)
