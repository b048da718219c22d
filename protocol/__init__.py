"""Wire messages exchanged between prover and verifier."""

from .messages import (
    RegistrationMessage,
    HandshakeMessage,
    CommitmentMessage,
    ChallengeMessage,
    ResponseMessage,
    RoundResultMessage,
)

__version__ = "1.0.0"

__all__ = [
    'RegistrationMessage',
    'HandshakeMessage',
    'CommitmentMessage',
    'ChallengeMessage',
    'ResponseMessage',
    'RoundResultMessage',
]
