# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import NDArray, xp
from blockgreens.datastructures import BlockMatrix

BLOCK_SIZES = [
    pytest.param(xp.array([2, 3, 2, 3]), id="mixed-block-size"),
    pytest.param(xp.array([3] * 4), id="constant-block-size"),
]


@pytest.fixture(params=BLOCK_SIZES)
def block_sizes(request: pytest.FixtureRequest) -> NDArray:
    return request.param


@pytest.fixture
def dense(block_sizes: NDArray) -> NDArray:
    """Returns a random complex matrix matching the block sizes."""
    size = int(xp.sum(block_sizes))
    return xp.random.rand(size, size) + 1j * xp.random.rand(size, size)


@pytest.fixture
def block_matrix(dense: NDArray, block_sizes: NDArray) -> BlockMatrix:
    return BlockMatrix(dense, block_sizes)
