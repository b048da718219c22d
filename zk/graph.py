"""
Graph Model for Isomorphism Proofs
==================================
Undirected simple graphs on labelled nodes ``0..n-1`` stored as a symmetric
numpy ``uint8`` adjacency matrix, plus the permutation helpers and the
deterministic seed-to-graph derivation used for prover registration.

The commitment hash is SHA-256 over the compact JSON rendering of the matrix
(``[[0,1,...],...]`` with no whitespace) so registrations made by any client
that serialises the matrix the same way hash identically.
"""

import hashlib
import json
import logging
import secrets
from typing import List, Dict, Any, Sequence

import numpy as np

from exceptions import InvalidInputError

logger = logging.getLogger(__name__)

Permutation = List[int]

DEFAULT_NUM_NODES = 8

# ============================================================================
# GRAPH
# ============================================================================


class Graph:
    """Undirected graph without self loops"""

    def __init__(self, num_nodes: int):
        if isinstance(num_nodes, bool) or not isinstance(num_nodes, int) or num_nodes < 1:
            raise InvalidInputError(
                f"Graph needs a positive node count, got {num_nodes!r}")
        self.num_nodes = num_nodes
        self.adjacency = np.zeros((num_nodes, num_nodes), dtype=np.uint8)

    def __repr__(self) -> str:
        return f"Graph(num_nodes={self.num_nodes}, edges={self.edge_count()})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return (self.num_nodes == other.num_nodes
                and np.array_equal(self.adjacency, other.adjacency))

    def _check_node(self, i) -> int:
        if isinstance(i, bool) or not isinstance(i, (int, np.integer)):
            raise InvalidInputError(f"Node label must be an integer, got {i!r}")
        if not 0 <= i < self.num_nodes:
            raise InvalidInputError(
                f"Node {i} out of range for {self.num_nodes} nodes")
        return int(i)

    def add_edge(self, i: int, j: int):
        i = self._check_node(i)
        j = self._check_node(j)
        if i == j:
            raise InvalidInputError(f"Self loop on node {i} not allowed")
        self.adjacency[i, j] = 1
        self.adjacency[j, i] = 1

    def has_edge(self, i: int, j: int) -> bool:
        return bool(self.adjacency[self._check_node(i), self._check_node(j)])

    def get_neighbors(self, i: int) -> List[int]:
        row = self.adjacency[self._check_node(i)]
        return [int(j) for j in np.flatnonzero(row)]

    def degree(self, i: int) -> int:
        return int(self.adjacency[self._check_node(i)].sum())

    def edge_count(self) -> int:
        return int(self.adjacency.sum()) // 2

    def apply_permutation(self, permutation: Sequence[int]) -> 'Graph':
        return apply_permutation(self, permutation)

    def copy(self) -> 'Graph':
        clone = Graph(self.num_nodes)
        clone.adjacency = self.adjacency.copy()
        return clone

    def to_matrix(self) -> List[List[int]]:
        return self.adjacency.tolist()

    @staticmethod
    def from_matrix(matrix: Any, expected_nodes: int = None) -> 'Graph':
        """
        Build a graph from a square 0/1 matrix.

        The matrix must be symmetric with an empty diagonal; anything else is
        rejected rather than repaired.
        """
        if isinstance(matrix, Graph):
            matrix = matrix.adjacency
        try:
            array = np.asarray(matrix)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Adjacency matrix is malformed: {e}")

        if array.ndim != 2 or array.shape[0] != array.shape[1] or array.shape[0] == 0:
            raise InvalidInputError(
                f"Adjacency matrix must be square and non-empty, got shape {array.shape}")
        if array.dtype == object or not (np.issubdtype(array.dtype, np.integer)
                                         or np.issubdtype(array.dtype, np.bool_)):
            raise InvalidInputError("Adjacency matrix entries must be integers")
        if not np.isin(array, (0, 1)).all():
            raise InvalidInputError("Adjacency matrix entries must be 0 or 1")
        if not np.array_equal(array, array.T):
            raise InvalidInputError("Adjacency matrix is not symmetric")
        if np.diagonal(array).any():
            raise InvalidInputError("Adjacency matrix has self loops")

        n = array.shape[0]
        if expected_nodes is not None and n != expected_nodes:
            raise InvalidInputError(
                f"Expected a {expected_nodes}-node graph, got {n} nodes")

        graph = Graph(n)
        graph.adjacency = array.astype(np.uint8)
        return graph

    def to_dict(self) -> Dict[str, Any]:
        return {'numNodes': self.num_nodes, 'adjacencyMatrix': self.to_matrix()}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Graph':
        try:
            num_nodes = data['numNodes']
            matrix = data['adjacencyMatrix']
        except (KeyError, TypeError) as e:
            raise InvalidInputError(f"Malformed graph: {e}")
        return Graph.from_matrix(matrix, expected_nodes=num_nodes)

    def get_hash(self) -> str:
        return graph_hash(self)

# ============================================================================
# HASHING AND DERIVATION
# ============================================================================


def canonical_json(graph: Graph) -> str:
    return json.dumps(graph.to_matrix(), separators=(",", ":"))


def graph_hash(graph: Graph) -> str:
    """Hex SHA-256 of the compact JSON adjacency matrix"""
    return hashlib.sha256(canonical_json(graph).encode()).hexdigest()


def derive_secret_graph(seed: bytes, num_nodes: int = DEFAULT_NUM_NODES) -> Graph:
    """
    Deterministically derive a graph from a secret seed.

    One bit of SHA-256(seed) decides each candidate edge (i, j), i < j, in
    row-major order. Bits are consumed least-significant first within each
    byte, wrapping back to the first byte after the last. Any node left
    without neighbours is then joined to its successor (i + 1) mod n.
    """
    if not isinstance(seed, (bytes, bytearray)):
        raise InvalidInputError(
            "Seed must be bytes; use derive_secret_graph_from_text for strings")
    if isinstance(num_nodes, bool) or not isinstance(num_nodes, int) or num_nodes < 2:
        raise InvalidInputError("Derived graphs need at least 2 nodes")

    digest = hashlib.sha256(bytes(seed)).digest()
    graph = Graph(num_nodes)

    position = 0
    for i in range(num_nodes):
        for j in range(i + 1, num_nodes):
            byte = digest[(position // 8) % len(digest)]
            if (byte >> (position % 8)) & 1:
                graph.add_edge(i, j)
            position += 1

    for i in range(num_nodes):
        if graph.degree(i) == 0:
            graph.add_edge(i, (i + 1) % num_nodes)

    return graph


def derive_secret_graph_from_text(seed: str, num_nodes: int = DEFAULT_NUM_NODES) -> Graph:
    """Text seeds (passphrases) are hashed as their UTF-8 bytes"""
    if not isinstance(seed, str):
        raise InvalidInputError("Text seed must be a str")
    return derive_secret_graph(seed.encode("utf-8"), num_nodes)


def graph_commitment(seed: bytes, num_nodes: int = DEFAULT_NUM_NODES) -> str:
    """Registration commitment for a seed: hash of its derived graph"""
    return graph_hash(derive_secret_graph(seed, num_nodes))

# ============================================================================
# PERMUTATIONS
# ============================================================================


def validate_permutation(permutation: Any, n: int) -> Permutation:
    """Return the permutation as a list of ints, or raise if not a bijection on 0..n-1"""
    if isinstance(permutation, (str, bytes)):
        raise InvalidInputError("Permutation must be a sequence of integers")
    try:
        values = list(permutation)
    except TypeError:
        raise InvalidInputError("Permutation must be a sequence of integers")

    if len(values) != n:
        raise InvalidInputError(
            f"Permutation has {len(values)} entries, expected {n}")
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)):
            raise InvalidInputError(f"Permutation entry {v!r} is not an integer")
    values = [int(v) for v in values]
    if sorted(values) != list(range(n)):
        raise InvalidInputError("Permutation is not a bijection")
    return values


def random_permutation(n: int) -> Permutation:
    """Uniform Fisher-Yates shuffle driven by the OS CSPRNG"""
    perm = list(range(n))
    for i in range(n - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        perm[i], perm[j] = perm[j], perm[i]
    return perm


def inverse_permutation(permutation: Sequence[int]) -> Permutation:
    perm = validate_permutation(permutation, len(permutation))
    inverse = [0] * len(perm)
    for i, image in enumerate(perm):
        inverse[image] = i
    return inverse


def compose_permutations(first: Sequence[int], second: Sequence[int]) -> Permutation:
    """Apply ``first`` then ``second``: result[i] = second[first[i]]"""
    first = validate_permutation(first, len(first))
    second = validate_permutation(second, len(first))
    return [second[i] for i in first]


def apply_permutation(graph: Graph, permutation: Sequence[int]) -> Graph:
    """Relabel every edge (i, j) as (perm[i], perm[j])"""
    perm = validate_permutation(permutation, graph.num_nodes)
    index = np.empty(graph.num_nodes, dtype=np.intp)
    index[perm] = np.arange(graph.num_nodes)
    permuted = Graph(graph.num_nodes)
    # permuted[perm[i], perm[j]] = original[i, j]
    permuted.adjacency = graph.adjacency[np.ix_(index, index)].copy()
    return permuted


def is_isomorphic_via(graph: Graph, other: Graph, permutation: Sequence[int]) -> bool:
    """True when graph[i][j] == other[perm[i]][perm[j]] for every pair"""
    if graph.num_nodes != other.num_nodes:
        return False
    perm = validate_permutation(permutation, graph.num_nodes)
    return bool(np.array_equal(graph.adjacency,
                               other.adjacency[np.ix_(perm, perm)]))
