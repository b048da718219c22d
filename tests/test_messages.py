"""
Wire message tests
"""

import pytest

from exceptions import InvalidInputError
from protocol.messages import (
    ChallengeMessage,
    CommitmentMessage,
    HandshakeMessage,
    RegistrationMessage,
    ResponseMessage,
    RoundResultMessage,
)

G_COMPRESSED = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
DIGEST = "5121494f68d6a42a3bae6138d55833c39fea5386df70060ca29d0caebdd10048"
MATRIX = [[0, 1], [1, 0]]


class TestRegistration:
    def test_camel_case_fields(self):
        msg = RegistrationMessage(bytes.fromhex(G_COMPRESSED), DIGEST)
        assert msg.to_dict() == {
            'publicKeyCompressed': G_COMPRESSED,
            'graphCommitmentHash': DIGEST,
        }

    def test_from_dict_normalises_hex_case(self):
        msg = RegistrationMessage.from_dict({
            'publicKeyCompressed': G_COMPRESSED.upper(),
            'graphCommitmentHash': DIGEST.upper(),
        })
        assert msg.public_key_compressed == bytes.fromhex(G_COMPRESSED)
        assert msg.graph_commitment_hash == DIGEST

    @pytest.mark.parametrize("data", [
        {'graphCommitmentHash': DIGEST},
        {'publicKeyCompressed': G_COMPRESSED[:-2], 'graphCommitmentHash': DIGEST},
        {'publicKeyCompressed': G_COMPRESSED, 'graphCommitmentHash': DIGEST[:-2]},
        {'publicKeyCompressed': 'xyz', 'graphCommitmentHash': DIGEST},
        {'publicKeyCompressed': 123, 'graphCommitmentHash': DIGEST},
        [G_COMPRESSED, DIGEST],
    ])
    def test_malformed(self, data):
        with pytest.raises(InvalidInputError):
            RegistrationMessage.from_dict(data)


class TestHandshake:
    def test_dict_form(self):
        msg = HandshakeMessage("sess_1", bytes.fromhex(G_COMPRESSED))
        data = msg.to_dict()
        assert data == {'sessionId': "sess_1", 'peerPublicKeyCompressed': G_COMPRESSED}
        assert HandshakeMessage.from_dict(data) == msg

    def test_empty_session_id(self):
        with pytest.raises(InvalidInputError):
            HandshakeMessage.from_dict({'sessionId': "", 'peerPublicKeyCompressed': G_COMPRESSED})


class TestRoundMessages:
    def test_commitment(self):
        data = {'sessionId': "s", 'permutedGraphAdjacencyMatrix': MATRIX}
        assert CommitmentMessage.from_dict(data).to_dict() == data

    @pytest.mark.parametrize("matrix", [[0, 1], [[0, "1"], [1, 0]], [[0, True], [True, 0]], None])
    def test_commitment_matrix_types(self, matrix):
        with pytest.raises(InvalidInputError):
            CommitmentMessage.from_dict({'sessionId': "s", 'permutedGraphAdjacencyMatrix': matrix})

    def test_challenge(self):
        msg = ChallengeMessage.from_dict({'challengeNode': 3, 'round': 0})
        assert msg == ChallengeMessage(challenge_node=3, round=0)
        with pytest.raises(InvalidInputError):
            ChallengeMessage.from_dict({'challengeNode': "3", 'round': 0})

    def test_response(self):
        data = {
            'sessionId': "s",
            'originalGraphAdjacencyMatrix': MATRIX,
            'permutation': [1, 0],
            'challengeNode': 1,
        }
        msg = ResponseMessage.from_dict(data)
        assert msg.permutation == [1, 0]
        assert msg.to_dict() == data

    def test_response_bad_permutation(self):
        with pytest.raises(InvalidInputError):
            ResponseMessage.from_dict({
                'sessionId': "s",
                'originalGraphAdjacencyMatrix': MATRIX,
                'permutation': "10",
                'challengeNode': 1,
            })

    def test_round_result(self):
        msg = RoundResultMessage(round_valid=True, rounds_remaining=0,
                                 complete=True, authenticated=True)
        data = msg.to_dict()
        assert data == {'roundValid': True, 'roundsRemaining': 0,
                        'complete': True, 'authenticated': True}
        assert RoundResultMessage.from_dict(data) == msg
        with pytest.raises(InvalidInputError):
            RoundResultMessage.from_dict({**data, 'complete': 1})
