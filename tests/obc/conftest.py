# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import NDArray, xp
from blockgreens.obc import Orientation

BLOCK_SIZE = [
    pytest.param(1, id="1x1"),
    pytest.param(4, id="4x4"),
    pytest.param(7, id="7x7"),
]

ORIENTATIONS = [
    pytest.param(Orientation.FROM_LEFT, id="from-left"),
    pytest.param(Orientation.FROM_RIGHT, id="from-right"),
]


@pytest.fixture(params=BLOCK_SIZE)
def block_size(request: pytest.FixtureRequest) -> int:
    """Returns the block size."""
    return request.param


@pytest.fixture(params=ORIENTATIONS)
def orientation(request: pytest.FixtureRequest) -> Orientation:
    """Returns the side on which the chain extends."""
    return request.param


@pytest.fixture
def a_xx(block_size: int) -> tuple[NDArray, ...]:
    """Returns the boundary blocks of a non-Hermitian system matrix.

    The diagonal block dominates the couplings, so the decimation
    converges within a few iterations.

    """
    a_ii = (
        xp.random.rand(block_size, block_size)
        + 1j * xp.random.rand(block_size, block_size)
        + 3 * block_size * xp.eye(block_size)
    )
    a_ij = 0.5 * (
        xp.random.rand(block_size, block_size)
        + 1j * xp.random.rand(block_size, block_size)
    )
    a_ji = 0.5 * (
        xp.random.rand(block_size, block_size)
        + 1j * xp.random.rand(block_size, block_size)
    )
    return a_ji, a_ii, a_ij
