# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import NDArray, xp
from blockgreens.transport import TransportDirection

BLOCK_SIZES = [
    pytest.param(xp.array([2, 3, 2]), id="mixed-block-size"),
    pytest.param(xp.array([2] * 4), id="constant-block-size"),
    pytest.param(xp.array([7]), id="single-block"),
]

DIRECTIONS = [
    pytest.param(TransportDirection.LEFT_TO_RIGHT, id="left-to-right"),
    pytest.param(TransportDirection.RIGHT_TO_LEFT, id="right-to-left"),
]


@pytest.fixture(params=BLOCK_SIZES)
def block_sizes(request: pytest.FixtureRequest) -> NDArray:
    return request.param


@pytest.fixture(params=DIRECTIONS)
def direction(request: pytest.FixtureRequest) -> TransportDirection:
    return request.param


@pytest.fixture
def couplings(block_sizes: NDArray) -> tuple[NDArray, NDArray]:
    """Returns the couplings between the device ends and two-site lead cells.

    The left lead couples through the last site of its surface cell,
    the right lead through the first site.

    """
    v_left = xp.zeros((int(block_sizes[0]), 2))
    v_left[0, 1] = -1.0
    v_right = xp.zeros((2, int(block_sizes[-1])))
    v_right[0, -1] = -1.0
    return v_left, v_right
