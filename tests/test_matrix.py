import math

import pytest

from firedrone.matrix import (
    cross,
    format_matrix,
    invert,
    multiply,
    multiply_transposed,
    normalize,
    qr_transpose,
    transpose,
    transposed_multiply,
)

A = [[2.0, -1.0, 0.5], [1.0, 3.0, -2.0], [0.0, 4.0, 1.5]]
B = [[1.0, 0.0], [2.0, -1.0], [0.5, 3.0]]


def _close(m1, m2, tol=1e-9):
    assert len(m1) == len(m2)
    for r1, r2 in zip(m1, m2):
        assert r1 == pytest.approx(r2, abs=tol)


def _identity(n):
    return [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]


def test_multiply_by_identity_is_unchanged():
    _close(multiply(A, _identity(3)), A)
    _close(multiply(_identity(3), B), B)


def test_multiply_shape():
    result = multiply(A, B)
    assert len(result) == 3
    assert all(len(row) == 2 for row in result)


def test_multiply_dimension_mismatch():
    with pytest.raises(ValueError):
        multiply(B, B)


def test_multiply_transposed_matches_explicit_transpose():
    _close(multiply_transposed(A, A), multiply(A, transpose(A)))


def test_multiply_transposed_mismatch():
    with pytest.raises(ValueError):
        multiply_transposed(A, B)


def test_transposed_multiply_matches_explicit_transpose():
    _close(transposed_multiply(A, B), multiply(transpose(A), B))


def test_transposed_multiply_mismatch():
    with pytest.raises(ValueError):
        transposed_multiply(A, [[1.0, 2.0]])


def test_transpose_twice_round_trips():
    assert transpose(transpose(B)) == B
    assert transpose(B)[1][2] == B[2][1]


def test_invert_gives_identity():
    _close(multiply(invert(A), A), _identity(3))
    _close(multiply(A, invert(A)), _identity(3))


def test_invert_needs_pivoting():
    m = [[0.0, 1.0], [1.0, 0.0]]
    _close(invert(m), m)


def test_invert_rejects_non_square():
    with pytest.raises(ValueError):
        invert(B)


def test_cross_of_axes():
    assert cross([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == [0.0, 0.0, 1.0]


def test_cross_is_orthogonal_to_inputs():
    u, v = [1.0, 2.0, 3.0], [-2.0, 0.5, 4.0]
    w = cross(u, v)
    assert sum(x * y for x, y in zip(w, u)) == pytest.approx(0.0)
    assert sum(x * y for x, y in zip(w, v)) == pytest.approx(0.0)


def test_cross_rejects_wrong_length():
    with pytest.raises(ValueError):
        cross([1.0, 2.0], [3.0, 4.0])


def test_normalize_has_unit_norm():
    result = normalize([3.0, -4.0, 12.0])
    assert math.sqrt(sum(x * x for x in result)) == pytest.approx(1.0)


def test_normalize_zero_vector_stays_zero():
    assert normalize([0.0, 0.0, 0.0]) == [0.0, 0.0, 0.0]


def test_format_matrix_width():
    assert format_matrix([[1.0, 2.5]]) == "       1     2.5\n"


def test_format_matrix_one_line_per_row():
    text = format_matrix(A)
    lines = text.splitlines()
    assert len(lines) == 3
    assert all(len(line) == 24 for line in lines)


def test_qr_transpose_is_upper_triangular():
    r = qr_transpose(A)
    for i, row in enumerate(r):
        for j in range(i):
            assert row[j] == pytest.approx(0.0, abs=1e-9)


def test_qr_transpose_preserves_gram_matrix():
    r = qr_transpose(A)
    _close(multiply_transposed(r, r), multiply_transposed(A, A), tol=1e-9)


def test_qr_transpose_rejects_non_square():
    with pytest.raises(ValueError):
        qr_transpose(B)