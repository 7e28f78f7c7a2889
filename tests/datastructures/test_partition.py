# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import xp
from blockgreens.datastructures import BlockPartition
from blockgreens.exceptions import DimensionMismatch, IndexOutOfRange, InvalidPartition


def test_offsets():
    """Tests the prefix sums of the block sizes."""
    partition = BlockPartition([2, 3, 2, 3])
    assert partition.num_blocks == 4
    assert partition.total == 10
    assert xp.array_equal(partition.offsets, [0, 2, 5, 7, 10])
    assert partition.offset(2) == 5
    assert partition.size(1) == 3
    assert partition.block_slice(1) == slice(2, 5)


def test_negative_indices():
    """Tests that negative indices count from the end."""
    partition = BlockPartition([2, 3, 4])
    assert partition.normalize(-1) == 2
    assert partition.size(-1) == partition.size(2)
    assert partition.offset(-3) == partition.offset(0)


@pytest.mark.parametrize("index", [3, -4, 10])
def test_index_out_of_range(index: int):
    """Tests that invalid block indices are rejected."""
    partition = BlockPartition([2, 3, 4])
    with pytest.raises(IndexOutOfRange):
        partition.size(index)
    # Out of range indices are also IndexErrors.
    with pytest.raises(IndexError):
        partition.offset(index)


@pytest.mark.parametrize(
    "sizes",
    [
        pytest.param([], id="empty"),
        pytest.param([2, 0, 3], id="zero"),
        pytest.param([2, -1], id="negative"),
        pytest.param([1.5, 2], id="fractional"),
        pytest.param([[1, 2], [3, 4]], id="2D"),
    ],
)
def test_invalid_sizes(sizes: list):
    """Tests that invalid block sizes are rejected."""
    with pytest.raises(InvalidPartition):
        BlockPartition(sizes)


def test_dimension():
    """Tests the check against the partitioned dimension."""
    assert BlockPartition([2, 3], dimension=5).total == 5
    assert BlockPartition([2, 3], dimension=8).total == 5
    with pytest.raises(InvalidPartition):
        BlockPartition([2, 3], dimension=4)
    # Invalid partitions are also ValueErrors.
    with pytest.raises(ValueError):
        BlockPartition([2, 3], dimension=4)


def test_immutable():
    """Tests that the sizes cannot be modified."""
    sizes = xp.array([2, 3])
    partition = BlockPartition(sizes)
    sizes[0] = 7
    assert partition.size(0) == 2
    with pytest.raises(ValueError):
        partition.sizes[0] = 7


def test_splice():
    """Tests replacing a range of blocks."""
    partition = BlockPartition([2, 3, 2, 3])
    spliced = partition.splice(1, 2, BlockPartition([1, 1, 3]))
    assert list(spliced) == [2, 1, 1, 3, 3]
    assert spliced.total == partition.total
    # The original partition is untouched.
    assert list(partition) == [2, 3, 2, 3]

    with pytest.raises(DimensionMismatch):
        partition.splice(1, 2, BlockPartition([1, 1]))
    with pytest.raises(IndexOutOfRange):
        partition.splice(3, 2, BlockPartition([5]))


def test_reversed_and_equality():
    """Tests mirroring and comparing partitions."""
    partition = BlockPartition([1, 2, 3])
    assert list(partition.reversed()) == [3, 2, 1]
    assert partition.reversed().reversed() == partition
    assert partition != BlockPartition([1, 2])
    assert BlockPartition.uniform(2, 3) == BlockPartition([2, 2, 2])
    assert hash(BlockPartition([1, 2])) == hash(BlockPartition(xp.array([1, 2])))
