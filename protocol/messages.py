"""
Wire Messages
=============
Transport-independent message shapes exchanged between prover and verifier.
``to_dict`` / ``from_dict`` use the camelCase field names of the wire
contract; byte strings travel as lowercase hex, padded to their full width.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ecc.curve import COMPRESSED_LENGTH, IDENTITY_SENTINEL
from exceptions import InvalidInputError

logger = logging.getLogger(__name__)

Matrix = List[List[int]]

# ============================================================================
# FIELD HELPERS
# ============================================================================


def _field(data: Dict[str, Any], name: str) -> Any:
    if not isinstance(data, dict):
        raise InvalidInputError(
            f"Message must be a mapping, got {type(data).__name__}")
    if name not in data:
        raise InvalidInputError(f"Missing required field: {name}")
    return data[name]


def _int_field(data: Dict[str, Any], name: str) -> int:
    value = _field(data, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Field {name} must be an integer")
    return value


def _bool_field(data: Dict[str, Any], name: str) -> bool:
    value = _field(data, name)
    if not isinstance(value, bool):
        raise InvalidInputError(f"Field {name} must be a boolean")
    return value


def _str_field(data: Dict[str, Any], name: str) -> str:
    value = _field(data, name)
    if not isinstance(value, str) or not value:
        raise InvalidInputError(f"Field {name} must be a non-empty string")
    return value


def _key_field(data: Dict[str, Any], name: str) -> bytes:
    value = _str_field(data, name)
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise InvalidInputError(f"Field {name} is not valid hex")
    if raw != IDENTITY_SENTINEL and len(raw) != COMPRESSED_LENGTH:
        raise InvalidInputError(
            f"Field {name} must encode {COMPRESSED_LENGTH} bytes")
    return raw


def _digest_field(data: Dict[str, Any], name: str) -> str:
    value = _str_field(data, name)
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise InvalidInputError(f"Field {name} is not valid hex")
    if len(raw) != 32:
        raise InvalidInputError(f"Field {name} must be a 32-byte digest")
    return raw.hex()


def _matrix_field(data: Dict[str, Any], name: str) -> Matrix:
    value = _field(data, name)
    if not isinstance(value, list) or not all(isinstance(row, list) for row in value):
        raise InvalidInputError(f"Field {name} must be a list of rows")
    for row in value:
        for cell in row:
            if isinstance(cell, bool) or not isinstance(cell, int):
                raise InvalidInputError(f"Field {name} must contain integers")
    return [list(row) for row in value]


def _int_list_field(data: Dict[str, Any], name: str) -> List[int]:
    value = _field(data, name)
    if not isinstance(value, list):
        raise InvalidInputError(f"Field {name} must be a list")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise InvalidInputError(f"Field {name} must contain integers")
    return list(value)

# ============================================================================
# MESSAGES
# ============================================================================


@dataclass
class RegistrationMessage:
    """Published once by the prover"""
    public_key_compressed: bytes
    graph_commitment_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'publicKeyCompressed': self.public_key_compressed.hex(),
            'graphCommitmentHash': self.graph_commitment_hash,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'RegistrationMessage':
        return RegistrationMessage(
            public_key_compressed=_key_field(data, 'publicKeyCompressed'),
            graph_commitment_hash=_digest_field(data, 'graphCommitmentHash'),
        )


@dataclass
class HandshakeMessage:
    session_id: str
    peer_public_key_compressed: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'peerPublicKeyCompressed': self.peer_public_key_compressed.hex(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'HandshakeMessage':
        return HandshakeMessage(
            session_id=_str_field(data, 'sessionId'),
            peer_public_key_compressed=_key_field(
                data, 'peerPublicKeyCompressed'),
        )


@dataclass
class CommitmentMessage:
    session_id: str
    permuted_graph_adjacency_matrix: Matrix

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'permutedGraphAdjacencyMatrix': self.permuted_graph_adjacency_matrix,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'CommitmentMessage':
        return CommitmentMessage(
            session_id=_str_field(data, 'sessionId'),
            permuted_graph_adjacency_matrix=_matrix_field(
                data, 'permutedGraphAdjacencyMatrix'),
        )


@dataclass
class ChallengeMessage:
    challenge_node: int
    round: int

    def to_dict(self) -> Dict[str, Any]:
        return {'challengeNode': self.challenge_node, 'round': self.round}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'ChallengeMessage':
        return ChallengeMessage(
            challenge_node=_int_field(data, 'challengeNode'),
            round=_int_field(data, 'round'),
        )


@dataclass
class ResponseMessage:
    session_id: str
    original_graph_adjacency_matrix: Matrix
    permutation: List[int]
    challenge_node: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'originalGraphAdjacencyMatrix': self.original_graph_adjacency_matrix,
            'permutation': self.permutation,
            'challengeNode': self.challenge_node,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'ResponseMessage':
        return ResponseMessage(
            session_id=_str_field(data, 'sessionId'),
            original_graph_adjacency_matrix=_matrix_field(
                data, 'originalGraphAdjacencyMatrix'),
            permutation=_int_list_field(data, 'permutation'),
            challenge_node=_int_field(data, 'challengeNode'),
        )


@dataclass
class RoundResultMessage:
    """``authenticated`` only carries meaning once ``complete`` is true"""
    round_valid: bool
    rounds_remaining: int
    complete: bool
    authenticated: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roundValid': self.round_valid,
            'roundsRemaining': self.rounds_remaining,
            'complete': self.complete,
            'authenticated': self.authenticated,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'RoundResultMessage':
        return RoundResultMessage(
            round_valid=_bool_field(data, 'roundValid'),
            rounds_remaining=_int_field(data, 'roundsRemaining'),
            complete=_bool_field(data, 'complete'),
            authenticated=_bool_field(data, 'authenticated'),
        )
