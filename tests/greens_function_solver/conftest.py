# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import NDArray, sparse, xp
from blockgreens.greens_function_solver import RGF, GFSolver, Inv, InverseMode

GFSOLVERS_TYPE = [Inv, RGF]

BLOCK_SIZES = [
    pytest.param(xp.array([2, 3, 2, 3]), id="mixed-block-size"),
    pytest.param(xp.array([2] * 5), id="constant-block-size"),
    pytest.param(xp.array([1, 3, 2]), id="unit-block"),
    pytest.param(xp.array([4]), id="single-block"),
]

INVERSE_MODES = [
    pytest.param(mode, id=mode.value) for mode in InverseMode
]

HERMITIAN = [
    pytest.param(True, id="hermitian"),
    pytest.param(False, id="non-hermitian"),
]


@pytest.fixture(params=BLOCK_SIZES)
def block_sizes(request: pytest.FixtureRequest) -> NDArray:
    return request.param


@pytest.fixture(params=GFSOLVERS_TYPE)
def gfsolver_type(request: pytest.FixtureRequest) -> type[GFSolver]:
    return request.param


@pytest.fixture(params=INVERSE_MODES)
def inverse_mode(request: pytest.FixtureRequest) -> InverseMode:
    return request.param


@pytest.fixture(params=HERMITIAN)
def hermitian(request: pytest.FixtureRequest) -> bool:
    return request.param


def _random_block(m: int, n: int) -> NDArray:
    """Generates a quasi-sparse random block of size m x n."""
    coo = sparse.random(int(m), int(n), density=0.5, format="coo").astype(xp.complex128)
    coo.data += 1j * xp.random.uniform(size=coo.nnz)
    return coo.toarray()


@pytest.fixture
def bt_dense(block_sizes: NDArray, hermitian: bool) -> NDArray:
    """Generates a random, strictly diagonally dominant block-tridiagonal matrix."""
    block_offsets = xp.hstack(([0], xp.cumsum(block_sizes)))
    num_blocks = len(block_sizes)
    size = int(xp.sum(block_sizes))

    arr = xp.zeros((size, size), dtype=xp.complex128)

    for i in range(num_blocks):
        arr[
            block_offsets[i] : block_offsets[i + 1],
            block_offsets[i] : block_offsets[i + 1],
        ] = _random_block(block_sizes[i], block_sizes[i])

        if i > 0:
            arr[
                block_offsets[i] : block_offsets[i + 1],
                block_offsets[i - 1] : block_offsets[i],
            ] = _random_block(block_sizes[i], block_sizes[i - 1])
            arr[
                block_offsets[i - 1] : block_offsets[i],
                block_offsets[i] : block_offsets[i + 1],
            ] = _random_block(block_sizes[i - 1], block_sizes[i])

    if hermitian:
        arr = (arr + arr.conj().T) / 2

    # Make the matrix strictly diagonally dominant.
    arr += xp.diag(1.0 + xp.sum(xp.abs(arr), axis=1))

    return arr
