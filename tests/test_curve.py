"""
secp256k1 group law and encoding tests
"""

import pytest

from ecc.curve import (
    SECP256K1,
    KeyPair,
    Point,
    compress,
    compress_hex,
    decompress,
    decompress_hex,
    generate_key_pair,
    generate_private_key,
    generate_public_key,
    get_generator,
    is_on_curve,
    key_pair_from_private_key,
    negate,
    point_add,
    point_double,
    private_key_from_hex,
    private_key_to_hex,
    scalar_multiply,
    validate_public_key,
)
from exceptions import InvalidInputError

N = SECP256K1.n
P = SECP256K1.p
G = get_generator()

TWO_G = Point(
    0xc6047f9441ed7d6d3045406e95c07cd85c778e4b8cef3ca7abac09b95c709ee5,
    0x1ae168fea63dc339a3c58419466ceaeef7f632653266d0e1236431a950cfe52a)
THREE_G = Point(
    0xf9308a019258c31049344f85f89d5229b531c845836f99b08601f113bce036f9,
    0x388f7b0f632de8140fe337e62a37f3566500a99934c2231b6cb9fd7584b8e672)
SEVEN_G = Point(
    0x5cbdf0646e5db4eaa398f365f2ea7a0e3d419b7e0330e39ce92bddedcac4f9bc,
    0x6aebca40ba255960a3178d6d861a54dba813d0b813fde7b5a5082628087264da)

G_COMPRESSED = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
N_MINUS_1_G_COMPRESSED = "0379be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


class TestGroupLaw:
    def test_generator_on_curve(self):
        assert is_on_curve(G)

    def test_identity_is_on_curve(self):
        assert is_on_curve(Point.infinity())

    def test_off_curve_point(self):
        assert not is_on_curve(Point(1, 1))

    def test_known_multiples(self):
        assert point_double(G) == TWO_G
        assert point_add(TWO_G, G) == THREE_G
        assert scalar_multiply(7, G) == SEVEN_G

    def test_identity_is_neutral(self):
        O = Point.infinity()
        assert point_add(G, O) == G
        assert point_add(O, G) == G
        assert point_add(O, O).is_infinity()

    def test_inverse_points_sum_to_identity(self):
        assert point_add(G, negate(G)).is_infinity()

    def test_addition_commutes(self):
        assert point_add(TWO_G, SEVEN_G) == point_add(SEVEN_G, TWO_G)

    def test_addition_associates(self):
        left = point_add(point_add(G, TWO_G), SEVEN_G)
        right = point_add(G, point_add(TWO_G, SEVEN_G))
        assert left == right

    def test_negate_identity(self):
        assert negate(Point.infinity()).is_infinity()


class TestScalarMultiply:
    def test_zero_gives_identity(self):
        assert scalar_multiply(0, G).is_infinity()

    def test_order_gives_identity(self):
        assert scalar_multiply(N, G).is_infinity()

    def test_order_minus_one_is_negated_generator(self):
        assert scalar_multiply(N - 1, G) == negate(G)

    def test_negative_scalar(self):
        assert scalar_multiply(-3, G) == negate(THREE_G)

    def test_distributes_over_addition(self):
        a, b = 0x1234567, 0x89abcdef
        assert scalar_multiply(a + b, G) == point_add(
            scalar_multiply(a, G), scalar_multiply(b, G))

    @pytest.mark.parametrize("a,b", [
        (N - 1, N - 1),
        (N - 5, 10),
        (N // 2 + 1, N // 2 + 7),
        (N - 2, 2),
    ])
    def test_addition_wraps_modulo_order(self, a, b):
        assert a + b >= N
        assert scalar_multiply((a + b) % N, G) == point_add(
            scalar_multiply(a, G), scalar_multiply(b, G))

    def test_random_scalars_add(self):
        for _ in range(3):
            a, b = generate_private_key(), generate_private_key()
            assert scalar_multiply((a + b) % N, G) == point_add(
                scalar_multiply(a, G), scalar_multiply(b, G))

    def test_identity_stays_identity(self):
        assert scalar_multiply(12345, Point.infinity()).is_infinity()

    @pytest.mark.parametrize("k", [1.5, "3", None, True])
    def test_non_integer_scalar_rejected(self, k):
        with pytest.raises(InvalidInputError):
            scalar_multiply(k, G)


class TestPoint:
    def test_half_identity_rejected(self):
        with pytest.raises(InvalidInputError):
            Point(1, None)

    def test_coordinate_outside_field_rejected(self):
        with pytest.raises(InvalidInputError):
            Point(P, 1)

    def test_hashable_value_type(self):
        assert len({Point(G.x, G.y), G}) == 1

    def test_dict_form(self):
        data = G.to_dict()
        assert len(data['x']) == 64
        assert Point.from_dict(data) == G
        assert Point.from_dict(Point.infinity().to_dict()).is_infinity()

    def test_from_dict_malformed(self):
        with pytest.raises(InvalidInputError):
            Point.from_dict({'x': 'zz', 'y': '01'})
        with pytest.raises(InvalidInputError):
            Point.from_dict({'x': '01'})


class TestCompression:
    def test_generator_vector(self):
        assert compress_hex(G) == G_COMPRESSED

    def test_odd_y_prefix(self):
        assert compress_hex(negate(G)) == N_MINUS_1_G_COMPRESSED
        assert compress(TWO_G)[0] == 0x02

    def test_identity_sentinel(self):
        assert compress(Point.infinity()) == b"\x00"
        assert decompress(b"\x00").is_infinity()

    def test_decompress_vectors(self):
        assert decompress_hex(G_COMPRESSED) == G
        assert decompress_hex(N_MINUS_1_G_COMPRESSED) == scalar_multiply(N - 1, G)

    def test_decompress_inverts_compress(self):
        for point in (G, TWO_G, THREE_G, SEVEN_G, negate(SEVEN_G)):
            assert decompress(compress(point)) == point

    def test_wrong_length_rejected(self):
        with pytest.raises(InvalidInputError):
            decompress(bytes.fromhex(G_COMPRESSED)[:-1])

    def test_bad_prefix_rejected(self):
        with pytest.raises(InvalidInputError):
            decompress(b"\x04" + bytes.fromhex(G_COMPRESSED)[1:])

    def test_x_not_reduced_rejected(self):
        with pytest.raises(InvalidInputError):
            decompress(b"\x02" + P.to_bytes(32, 'big'))

    def test_x_with_no_curve_point_rejected(self):
        # x = 5: 5³ + 7 = 132 is not a square mod p
        with pytest.raises(InvalidInputError):
            decompress(b"\x02" + (5).to_bytes(32, 'big'))

    def test_non_bytes_rejected(self):
        with pytest.raises(InvalidInputError):
            decompress(G_COMPRESSED)

    def test_bad_hex_rejected(self):
        with pytest.raises(InvalidInputError):
            decompress_hex("not-hex")


class TestKeys:
    def test_validate_public_key(self):
        assert validate_public_key(G)
        assert not validate_public_key(Point.infinity())
        assert not validate_public_key(Point(1, 1))

    def test_private_key_in_range(self):
        for _ in range(5):
            assert 1 <= generate_private_key() < N

    def test_public_key_for_known_scalar(self):
        assert generate_public_key(7) == SEVEN_G

    @pytest.mark.parametrize("d", [0, N, -1])
    def test_out_of_range_private_key(self, d):
        with pytest.raises(InvalidInputError):
            generate_public_key(d)

    def test_key_pair_consistency(self):
        pair = generate_key_pair()
        assert scalar_multiply(pair.private_key, G) == pair.public_key
        assert validate_public_key(pair.public_key)

    def test_private_key_not_in_repr(self):
        pair = key_pair_from_private_key(7)
        assert isinstance(pair, KeyPair)
        assert "private_key" not in repr(pair)
        assert pair.public_key_compressed == compress(SEVEN_G)

    def test_private_key_hex_storage(self):
        encoded = private_key_to_hex(7)
        assert len(encoded) == 64
        assert private_key_from_hex(encoded) == 7
        with pytest.raises(InvalidInputError):
            private_key_from_hex("00")
