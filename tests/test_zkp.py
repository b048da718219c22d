"""
Graph-isomorphism prover / verifier state machine tests
"""

import secrets

import pytest

from config.config import ZKPConfig
from exceptions import (
    ConcurrentRoundError,
    InvalidInputError,
    SessionExpiredError,
    SessionNotFoundError,
)
from utils.session_store import SessionStore
from zk.graph import apply_permutation, derive_secret_graph, graph_hash
from zk.graph_isomorphism import (
    ZKPProver,
    ZKPSessionState,
    ZKPVerifier,
    create_prover,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier(clock):
    store = SessionStore(max_sessions=100, session_timeout_seconds=1800,
                         clock=clock)
    return ZKPVerifier(store, ZKPConfig(num_nodes=8, max_rounds=5,
                                        round_timeout_seconds=60))


@pytest.fixture
def prover():
    return create_prover(b"voter-secret", 8)


def run_round(verifier, prover, session_id):
    commitment = prover.create_commitment()
    challenge = verifier.generate_challenge(session_id, commitment.graph.to_matrix())
    answer = prover.respond_to_challenge(challenge.challenge_node)
    return verifier.verify_response(session_id,
                                    answer.original_graph.to_matrix(),
                                    answer.permutation,
                                    answer.challenge_node)


class TestProver:
    def test_commitment_is_permutation_of_secret(self, prover):
        commitment = prover.create_commitment()
        assert commitment.hash_hex == graph_hash(commitment.graph)
        answer = prover.respond_to_challenge(0)
        assert apply_permutation(answer.original_graph, answer.permutation) == commitment.graph

    def test_response_requires_commitment(self, prover):
        with pytest.raises(InvalidInputError):
            prover.respond_to_challenge(0)

    def test_permutation_forgotten_after_response(self, prover):
        prover.create_commitment()
        prover.respond_to_challenge(3)
        with pytest.raises(InvalidInputError):
            prover.respond_to_challenge(3)

    def test_registered_hash(self, prover):
        assert prover.registered_hash == \
            "7635a18f813513045b4bdcaada83724cca5dc719c08da857dfd1c10433bcd2b1"


class TestHonestSession:
    def test_five_rounds_succeed(self, verifier, prover):
        started = verifier.start_session("s1", prover.registered_hash)
        assert started == {'sessionId': "s1", 'maxRounds': 5}

        for expected_round in range(5):
            outcome = run_round(verifier, prover, "s1")
            assert outcome.valid
            assert outcome.round == expected_round
            assert outcome.rounds_remaining == 4 - expected_round

        assert verifier.is_complete("s1") == {'complete': True, 'success': True, 'rounds': 5}
        assert verifier.get_session("s1").state == ZKPSessionState.COMPLETE

    def test_incomplete_session_not_successful(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        run_round(verifier, prover, "s1")
        assert verifier.is_complete("s1") == {'complete': False, 'success': False, 'rounds': 1}

    def test_end_session_removes(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        for _ in range(5):
            run_round(verifier, prover, "s1")
        assert verifier.end_session("s1")['success'] is True
        with pytest.raises(SessionNotFoundError):
            verifier.is_complete("s1")

    def test_challenge_nodes_cover_graph(self, verifier, prover):
        seen = set()
        for i in range(40):
            sid = f"cover-{i}"
            verifier.start_session(sid, prover.registered_hash)
            for _ in range(5):
                commitment = prover.create_commitment()
                challenge = verifier.generate_challenge(sid, commitment.graph.to_matrix())
                assert 0 <= challenge.challenge_node < 8
                seen.add(challenge.challenge_node)
                answer = prover.respond_to_challenge(challenge.challenge_node)
                verifier.verify_response(sid, answer.original_graph.to_matrix(),
                                         answer.permutation, answer.challenge_node)
        assert seen == set(range(8))


class TestDishonestSessions:
    def test_wrong_secret_fails_every_round_without_abort(self, verifier, prover):
        impostor = create_prover(b"mallory-seed", 8)
        verifier.start_session("s1", prover.registered_hash)

        outcomes = [run_round(verifier, impostor, "s1") for _ in range(5)]
        assert not any(o.valid for o in outcomes)
        assert verifier.is_complete("s1") == {'complete': True, 'success': False, 'rounds': 5}

    def test_one_bad_round_fails_session(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        for _ in range(4):
            assert run_round(verifier, prover, "s1").valid

        commitment = prover.create_commitment()
        challenge = verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(challenge.challenge_node)
        wrong_node = (challenge.challenge_node + 1) % 8
        outcome = verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                           answer.permutation, wrong_node)
        assert not outcome.valid
        assert verifier.is_complete("s1")['success'] is False

    def test_commitment_not_matching_secret(self, verifier, prover, monkeypatch):
        # Force the challenge onto node 0 and commit to a graph whose node 0
        # neighbourhood differs from any relabelling of the secret.
        monkeypatch.setattr(secrets, "randbelow", lambda n: 0)
        verifier.start_session("s1", prover.registered_hash)

        commitment = prover.create_commitment()
        forged = commitment.graph.copy()
        for j in range(1, 8):
            forged.adjacency[0, j] = forged.adjacency[j, 0] = 1 - forged.adjacency[0, j]

        challenge = verifier.generate_challenge("s1", forged.to_matrix())
        assert challenge.challenge_node == 0
        answer = prover.respond_to_challenge(0)
        outcome = verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                           answer.permutation, 0)
        assert not outcome.valid

    def test_registered_hash_binds_original_graph(self, verifier, prover):
        # A self-consistent graph/permutation pair is still rejected when the
        # revealed graph is not the registered one.
        other = ZKPProver(derive_secret_graph(b"other", 8))
        verifier.start_session("s1", prover.registered_hash)
        assert not run_round(verifier, other, "s1").valid


class TestMalformedInput:
    def test_asymmetric_original_rejected_without_advancing(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        challenge = verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(challenge.challenge_node)

        bad = answer.original_graph.to_matrix()
        bad[0][1], bad[1][0] = 1, 0
        with pytest.raises(InvalidInputError):
            verifier.verify_response("s1", bad, answer.permutation, answer.challenge_node)

        assert verifier.get_session("s1").current_round == 0
        outcome = verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                           answer.permutation, answer.challenge_node)
        assert outcome.valid and outcome.round == 0

    @pytest.mark.parametrize("perm", [[0] * 8, list(range(7)), list(range(1, 9))])
    def test_non_bijection_rejected(self, verifier, prover, perm):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        challenge = verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(challenge.challenge_node)
        with pytest.raises(InvalidInputError):
            verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                     perm, answer.challenge_node)
        assert verifier.get_session("s1").current_round == 0

    def test_wrong_size_commitment_rejected(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        small = create_prover(b"small", 4).create_commitment()
        with pytest.raises(InvalidInputError):
            verifier.generate_challenge("s1", small.graph.to_matrix())

    def test_non_integer_challenge_node(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(0)
        with pytest.raises(InvalidInputError):
            verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                     answer.permutation, "0")

    @pytest.mark.parametrize("registered", ["abc", "zz" * 32, None])
    def test_bad_registered_hash(self, verifier, registered):
        with pytest.raises(InvalidInputError):
            verifier.start_session("s1", registered)

    @pytest.mark.parametrize("num_nodes", [0, 1, -3, True, 2.0])
    def test_bad_node_count(self, verifier, prover, num_nodes):
        with pytest.raises(InvalidInputError):
            verifier.start_session("s1", prover.registered_hash, num_nodes=num_nodes)
        assert len(verifier.store) == 0

    def test_default_node_count(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        assert verifier.get_session("s1").num_nodes == 8


class TestStateMachine:
    def test_second_challenge_while_outstanding(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        verifier.generate_challenge("s1", commitment.graph.to_matrix())
        with pytest.raises(InvalidInputError):
            verifier.generate_challenge("s1", commitment.graph.to_matrix())

    def test_response_without_challenge(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        graph = prover.secret_graph.to_matrix()
        with pytest.raises(InvalidInputError):
            verifier.verify_response("s1", graph, list(range(8)), 0)

    def test_no_rounds_after_completion(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        for _ in range(5):
            run_round(verifier, prover, "s1")
        with pytest.raises(InvalidInputError):
            verifier.generate_challenge("s1", prover.create_commitment().graph.to_matrix())

    def test_duplicate_session_id(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        with pytest.raises(InvalidInputError):
            verifier.start_session("s1", prover.registered_hash)

    @pytest.mark.parametrize("call", [
        lambda v: v.generate_challenge("missing", [[0]]),
        lambda v: v.verify_response("missing", [[0]], [0], 0),
        lambda v: v.is_complete("missing"),
        lambda v: v.end_session("missing"),
    ])
    def test_unknown_session(self, verifier, call):
        with pytest.raises(SessionNotFoundError):
            call(verifier)

    def test_concurrent_operation_on_same_session(self, verifier, prover):
        verifier.start_session("s1", prover.registered_hash)
        verifier.start_session("s2", prover.registered_hash)
        with verifier.store.exclusive("s1"):
            with pytest.raises(ConcurrentRoundError):
                verifier.generate_challenge("s1", prover.create_commitment().graph.to_matrix())
            # Other sessions are unaffected
            assert run_round(verifier, prover, "s2").valid


class TestTimeouts:
    def test_late_response_expires_session(self, verifier, prover, clock):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        challenge = verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(challenge.challenge_node)

        clock.advance(61)
        with pytest.raises(SessionExpiredError):
            verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                     answer.permutation, answer.challenge_node)

        assert verifier.store.get("s1").state == ZKPSessionState.EXPIRED
        with pytest.raises(SessionExpiredError):
            verifier.is_complete("s1")
        with pytest.raises(SessionExpiredError):
            verifier.generate_challenge("s1", commitment.graph.to_matrix())

    def test_response_within_timeout_accepted(self, verifier, prover, clock):
        verifier.start_session("s1", prover.registered_hash)
        commitment = prover.create_commitment()
        challenge = verifier.generate_challenge("s1", commitment.graph.to_matrix())
        answer = prover.respond_to_challenge(challenge.challenge_node)
        clock.advance(59)
        assert verifier.verify_response("s1", answer.original_graph.to_matrix(),
                                        answer.permutation, answer.challenge_node).valid

    def test_session_horizon(self, verifier, prover, clock):
        verifier.start_session("s1", prover.registered_hash)
        clock.advance(1801)
        with pytest.raises(SessionExpiredError):
            verifier.is_complete("s1")
        # Expired sessions are dropped from the store
        with pytest.raises(SessionNotFoundError):
            verifier.is_complete("s1")
