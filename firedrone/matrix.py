"""Dense matrix helpers working on lists of rows."""

from __future__ import annotations

import math
from collections.abc import Sequence

Matrix = list[list[float]]

_NORMALIZE_EPS = 1e-24
_SINGULAR_PIVOT = 1.0e-12


def _shape(m: Sequence[Sequence[float]]) -> tuple[int, int]:
    rows = len(m)
    cols = len(m[0]) if rows else 0
    if any(len(row) != cols for row in m):
        raise ValueError("matrix rows have different lengths")
    return rows, cols


def _dot(u: Sequence[float], v: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(u, v))


def transpose(a: Sequence[Sequence[float]]) -> Matrix:
    """Return the transpose of ``a``."""
    _shape(a)
    return [list(column) for column in zip(*a)]


def multiply(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return ``a @ b``."""
    _, a_cols = _shape(a)
    b_rows, _ = _shape(b)
    if a_cols != b_rows:
        raise ValueError(f"cannot multiply: {a_cols} columns against {b_rows} rows")
    columns = list(zip(*b))
    return [[_dot(row, column) for column in columns] for row in a]


def multiply_transposed(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return ``a @ b.T``."""
    _, a_cols = _shape(a)
    _, b_cols = _shape(b)
    if a_cols != b_cols:
        raise ValueError(f"cannot multiply: {a_cols} columns against {b_cols} columns")
    return [[_dot(row_a, row_b) for row_b in b] for row_a in a]


def transposed_multiply(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """Return ``a.T @ b``."""
    a_rows, _ = _shape(a)
    b_rows, _ = _shape(b)
    if a_rows != b_rows:
        raise ValueError(f"cannot multiply: {a_rows} rows against {b_rows} rows")
    return multiply(transpose(a), b)


def _lu_decompose(lu: Matrix) -> list[int]:
    """Crout LU decomposition with implicit partial pivoting, in place."""
    n = len(lu)
    scale = []
    for row in lu:
        big = max((abs(x) for x in row), default=0.0)
        scale.append(1.0 / big if big else math.inf)

    pivots: list[int] = []
    imax = 0
    for j in range(n):
        for i in range(j):
            lu[i][j] -= sum(lu[i][k] * lu[k][j] for k in range(i))
        big = 0.0
        for i in range(j, n):
            value = lu[i][j] - sum(lu[i][k] * lu[k][j] for k in range(j))
            lu[i][j] = value
            weight = scale[i] * abs(value)
            if weight >= big:
                big = weight
                imax = i
        if j != imax:
            lu[imax], lu[j] = lu[j], lu[imax]
            scale[imax] = scale[j]
        pivots.append(imax)
        if lu[j][j] == 0.0:
            lu[j][j] = _SINGULAR_PIVOT
        if j != n - 1:
            inverse = 1.0 / lu[j][j]
            for i in range(j + 1, n):
                lu[i][j] *= inverse
    return pivots


def _lu_solve(lu: Matrix, pivots: list[int], b: list[float]) -> list[float]:
    n = len(lu)
    first = -1
    for i in range(n):
        pivot = pivots[i]
        value = b[pivot]
        b[pivot] = b[i]
        if first != -1:
            value -= sum(lu[i][j] * b[j] for j in range(first, i))
        elif value:
            first = i
        b[i] = value
    for i in reversed(range(n)):
        value = b[i] - sum(lu[i][j] * b[j] for j in range(i + 1, n))
        b[i] = value / lu[i][i]
    return b


def invert(a: Sequence[Sequence[float]]) -> Matrix:
    """Return the inverse of the square matrix ``a``.

    Zero pivots are replaced by a tiny value rather than reported.
    """
    rows, cols = _shape(a)
    if rows != cols:
        raise ValueError("only square matrices can be inverted")
    lu = [[float(x) for x in row] for row in a]
    pivots = _lu_decompose(lu)
    columns = [
        _lu_solve(lu, pivots, [1.0 if i == j else 0.0 for i in range(rows)])
        for j in range(rows)
    ]
    return transpose(columns)


def cross(v1: Sequence[float], v2: Sequence[float]) -> list[float]:
    """Return the cross product of two 3-vectors."""
    if len(v1) != 3 or len(v2) != 3:
        raise ValueError("cross product needs two 3-vectors")
    return [
        v1[1] * v2[2] - v1[2] * v2[1],
        v1[2] * v2[0] - v1[0] * v2[2],
        v1[0] * v2[1] - v1[1] * v2[0],
    ]


def normalize(v: Sequence[float]) -> list[float]:
    """Return ``v`` scaled to unit 2-norm; near-zero vectors are not blown up."""
    total = sum(x * x for x in v)
    magnitude = math.sqrt(max(total, _NORMALIZE_EPS))
    return [x / magnitude for x in v]


def format_matrix(m: Sequence[Sequence[float]]) -> str:
    """Render a matrix with each value right-aligned in eight characters."""
    return "".join("".join(f"{x:>8g}" for x in row) + "\n" for row in m)


def qr_transpose(a: Sequence[Sequence[float]]) -> Matrix:
    """Return the upper triangular factor R' with ``R' @ R'.T == a @ a.T``.

    Householder reflections are applied to the columns, last row first.
    """
    rows, cols = _shape(a)
    if rows != cols:
        raise ValueError("qr_transpose needs a square matrix")
    r = [[float(x) for x in row] for row in a]
    for j in reversed(range(rows)):
        vec = r[j][: j + 1]
        norm = math.sqrt(sum(x * x for x in vec))
        vec[j] += (1.0 if vec[j] >= 0 else -1.0) * norm
        vec = normalize(vec)
        projections = [_dot(vec, r[q][: j + 1]) for q in range(j + 1)]
        for q, projection in enumerate(projections):
            row = r[q]
            for k, component in enumerate(vec):
                row[k] -= 2 * component * projection
    return r