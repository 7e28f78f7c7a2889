# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import copy

import pytest

from blockgreens import NDArray, sparse, xp
from blockgreens.datastructures import BlockMatrix, BlockMatrixView, BlockPartition
from blockgreens.exceptions import (
    DimensionMismatch,
    IndexOutOfRange,
    InvalidPartition,
    PartitionMismatch,
)


def _dense_block(dense: NDArray, block_sizes: NDArray, row: int, col: int) -> NDArray:
    """Slices a block out of a dense matrix."""
    offsets = xp.hstack(([0], xp.cumsum(block_sizes)))
    return dense[offsets[row] : offsets[row + 1], offsets[col] : offsets[col + 1]]


def test_block(block_matrix: BlockMatrix, dense: NDArray, block_sizes: NDArray):
    """Tests that blocks are located at the partition offsets."""
    num_blocks = len(block_sizes)
    for i in range(num_blocks):
        for j in range(num_blocks):
            assert xp.array_equal(
                block_matrix.block(i, j), _dense_block(dense, block_sizes, i, j)
            )
    # Negative indices count from the end.
    assert xp.array_equal(
        block_matrix.blocks[-1, -2],
        _dense_block(dense, block_sizes, num_blocks - 1, num_blocks - 2),
    )


def test_block_out_of_range(block_matrix: BlockMatrix):
    """Tests that out of range block indices are rejected."""
    with pytest.raises(IndexOutOfRange):
        block_matrix.block(block_matrix.num_block_rows, 0)
    with pytest.raises(IndexOutOfRange):
        block_matrix.blocks[0, -block_matrix.num_block_cols - 1]


def test_set_block(block_matrix: BlockMatrix, block_sizes: NDArray):
    """Tests writing blocks through the indexer and the block view."""
    block = xp.ones((block_sizes[1], block_sizes[2]))
    block_matrix.blocks[1, 2] = block
    assert xp.array_equal(block_matrix.block(1, 2), block)

    block_matrix.block(0, 0)[:] = 0
    assert not xp.any(block_matrix.to_dense()[: block_sizes[0], : block_sizes[0]])

    with pytest.raises(DimensionMismatch):
        block_matrix.set_block(1, 2, xp.ones((block_sizes[1] + 1, block_sizes[2])))


def test_copy_semantics(dense: NDArray, block_sizes: NDArray):
    """Tests that owners copy and views alias."""
    owner = BlockMatrix(dense, block_sizes)
    owner.block(0, 0)[:] = 0
    # The input array is copied.
    assert xp.any(dense[: block_sizes[0], : block_sizes[0]])

    view = owner.view()
    view.block(1, 1)[:] = 7
    assert xp.all(owner.block(1, 1) == 7)
    assert view.owner is owner
    assert isinstance(copy.copy(view), BlockMatrixView)

    deep = owner.copy()
    deep.block(1, 1)[:] = 0
    assert xp.all(owner.block(1, 1) == 7)
    assert deep.row_partition == owner.row_partition


def test_sparse_input(block_sizes: NDArray):
    """Tests that sparse matrices are densified."""
    size = int(xp.sum(block_sizes))
    coo = sparse.random(size, size, density=0.3, format="coo")
    block_matrix = BlockMatrix(coo, block_sizes)
    assert xp.allclose(block_matrix.to_dense(), coo.toarray())


def test_invalid_data():
    """Tests that only two-dimensional data is accepted."""
    with pytest.raises(DimensionMismatch):
        BlockMatrix(xp.zeros((2, 2, 2)))
    with pytest.raises(InvalidPartition):
        BlockMatrix(xp.zeros((4, 4)), [2, 3])


def test_leading_partition():
    """Tests a partition that covers the leading submatrix only."""
    dense = xp.arange(25.0).reshape(5, 5)
    block_matrix = BlockMatrix(dense, [1, 2])
    assert block_matrix.shape == (3, 3)
    assert xp.array_equal(block_matrix.to_dense(), dense[:3, :3])
    assert xp.array_equal(block_matrix.block(1, 1), dense[1:3, 1:3])


def test_default_partition():
    """Tests that a matrix without block sizes is a single block."""
    dense = xp.arange(12.0).reshape(3, 4)
    block_matrix = BlockMatrix(dense)
    assert block_matrix.num_block_rows == block_matrix.num_block_cols == 1
    assert xp.array_equal(block_matrix.block(0, 0), dense)
    assert not block_matrix.is_square()


def test_set_blocks(block_matrix: BlockMatrix, dense: NDArray):
    """Tests re-partitioning an owner."""
    size = dense.shape[0]
    block_matrix.set_blocks([size - 1, 1], [1, size - 1])
    assert block_matrix.num_block_rows == 2
    assert not block_matrix.is_square()
    assert block_matrix.is_square(also_square_blocks=False)
    assert xp.array_equal(block_matrix.block(1, 0), dense[size - 1 :, :1])

    block_matrix.reset_blocks()
    assert block_matrix.num_block_rows == 1
    assert xp.array_equal(block_matrix.to_dense(), dense)


def test_subview(block_matrix: BlockMatrix, dense: NDArray, block_sizes: NDArray):
    """Tests views over block ranges."""
    offsets = xp.hstack(([0], xp.cumsum(block_sizes)))

    sub = block_matrix.subview(1, 1, 2, 2)
    assert xp.array_equal(
        sub.to_dense(), dense[offsets[1] : offsets[3], offsets[1] : offsets[3]]
    )
    assert xp.array_equal(sub.block(0, 1), _dense_block(dense, block_sizes, 1, 2))

    # A negative count selects the preceding blocks.
    preceding = block_matrix.subview(-1, -1, -2, -2)
    assert preceding.row_partition == BlockPartition(block_sizes[-3:-1])
    assert xp.array_equal(preceding.block(0, 0), _dense_block(dense, block_sizes, 1, 1))

    sliced = block_matrix.blocks[1:3, 1:3]
    assert xp.array_equal(sliced.to_dense(), sub.to_dense())

    with pytest.raises(IndexOutOfRange):
        block_matrix.subview(0, 0, 0, 1)
    with pytest.raises(IndexOutOfRange):
        block_matrix.subview(1, 1, 10, 1)
    with pytest.raises(IndexError):
        block_matrix.blocks[::2, :]


def test_reverse(block_matrix: BlockMatrix, dense: NDArray, block_sizes: NDArray):
    """Tests mirrored block indexing."""
    num_blocks = len(block_sizes)
    reversed_matrix = block_matrix.reverse()
    assert reversed_matrix.is_reversed
    assert reversed_matrix.row_partition == BlockPartition(block_sizes[::-1])

    for i in range(num_blocks):
        for j in range(num_blocks):
            assert xp.array_equal(
                reversed_matrix.block(i, j),
                block_matrix.block(num_blocks - 1 - i, num_blocks - 1 - j),
            )

    # Reversing twice restores the original order.
    assert xp.array_equal(reversed_matrix.reverse().to_dense(), dense)

    # The mirrored dense matrix has its blocks, not its entries, flipped.
    mirrored = reversed_matrix.to_dense()
    assert mirrored.shape == dense.shape
    assert xp.array_equal(
        mirrored[: block_sizes[-1], : block_sizes[-1]],
        _dense_block(dense, block_sizes, num_blocks - 1, num_blocks - 1),
    )

    with pytest.raises(ValueError):
        reversed_matrix.matrix

    # Writes through the mirrored view reach the owner.
    reversed_matrix.block(0, 0)[:] = 3
    assert xp.all(block_matrix.block(-1, -1) == 3)


def test_reversed_subview(block_matrix: BlockMatrix, block_sizes: NDArray):
    """Tests views over block ranges of a mirrored view."""
    num_blocks = len(block_sizes)
    sub = block_matrix.reverse().subview(0, 0, 2, 2)
    assert sub.is_reversed
    assert xp.array_equal(
        sub.block(1, 0), block_matrix.block(num_blocks - 2, num_blocks - 1)
    )


def test_block_diagonal(
    block_matrix: BlockMatrix, dense: NDArray, block_sizes: NDArray
):
    """Tests reading the blocks of a block diagonal."""
    num_blocks = len(block_sizes)
    for offset in (0, 1, -1):
        blocks = block_matrix.block_diagonal(offset)
        assert len(blocks) == num_blocks - abs(offset)
        for n, block in enumerate(blocks):
            i, j = n + max(0, -offset), n + max(0, offset)
            assert xp.array_equal(block, _dense_block(dense, block_sizes, i, j))

    assert block_matrix.block_diagonal(num_blocks) == []

    # Diagonals of a mirrored view run over the mirrored blocks.
    mirrored = block_matrix.reverse().block_diagonal(1)
    assert xp.array_equal(
        mirrored[0], _dense_block(dense, block_sizes, num_blocks - 1, num_blocks - 2)
    )


def test_materialize(block_matrix: BlockMatrix, block_sizes: NDArray):
    """Tests copying the active range of a view into a new owner."""
    sub = block_matrix.subview(1, 1, 2, 2)
    owner = sub.materialize()
    assert isinstance(owner, BlockMatrix)
    assert owner.owner is owner
    assert owner.row_partition == sub.row_partition
    assert owner.col_partition == sub.col_partition
    assert xp.array_equal(owner.to_dense(), sub.to_dense())

    owner.block(0, 0)[:] = 5
    assert not xp.any(block_matrix.block(1, 1) == 5)

    mirrored = block_matrix.reverse()
    owner = mirrored.materialize()
    assert not owner.is_reversed
    assert owner.row_partition == BlockPartition(block_sizes[::-1])
    assert xp.array_equal(owner.to_dense(), mirrored.to_dense())
    assert xp.array_equal(owner.matrix, mirrored.to_dense())

    owner.block(0, 0)[:] = 5
    assert not xp.any(block_matrix.block(-1, -1) == 5)



def test_with_blocks(dense: NDArray, block_sizes: NDArray):
    """Tests re-partitioning the active range of a view."""
    owner = BlockMatrix(dense, block_sizes)
    view = owner.subview(1, 1, 2, 2)
    span = int(block_sizes[1] + block_sizes[2])
    view.with_blocks(BlockPartition([1, span - 1]))

    assert view.num_block_rows == 2
    assert view.row_partition == BlockPartition([1, span - 1])
    offset = int(block_sizes[0])
    assert xp.array_equal(
        view.block(0, 1), dense[offset : offset + 1, offset + 1 : offset + span]
    )
    # The owner keeps its own partitions.
    assert owner.row_partition == BlockPartition(block_sizes)

    with pytest.raises(DimensionMismatch):
        view.with_blocks(BlockPartition([span + 1]))


def test_assign_view(block_matrix: BlockMatrix, block_sizes: NDArray):
    """Tests writing whole block ranges through views."""
    view = block_matrix.subview(0, 0, 2, 2)
    source = BlockMatrix.zeros(view.row_partition)
    source.set_identity()
    view.assign(source)
    assert xp.array_equal(view.to_dense(), xp.eye(*view.shape))

    block_matrix.blocks[2:, 2:] = xp.zeros(block_matrix.subview(2, 2, 2, 2).shape)
    assert not xp.any(block_matrix.subview(2, 2, 2, 2).to_dense())

    with pytest.raises(PartitionMismatch):
        view.assign(BlockMatrix.zeros([view.shape[0]]))
    with pytest.raises(DimensionMismatch):
        view.assign(xp.zeros((1, 1)))


def test_assign_owner(block_matrix: BlockMatrix):
    """Tests adopting data of a different shape."""
    other = BlockMatrix.zeros([1, 1])
    block_matrix.assign(other)
    assert block_matrix.shape == (2, 2)
    assert block_matrix.row_partition == BlockPartition([1, 1])

    block_matrix.assign(xp.ones((3, 3)))
    assert block_matrix.shape == (3, 3)
    assert block_matrix.num_block_rows == 1


def test_from_blocks():
    """Tests assembling a block-tridiagonal matrix."""
    diagonal = [xp.eye(2), 2 * xp.eye(3)]
    upper = [xp.ones((2, 3))]
    block_matrix = BlockMatrix.from_blocks(diagonal, upper)
    assert block_matrix.shape == (5, 5)
    assert xp.array_equal(block_matrix.block(1, 0), xp.ones((3, 2)))
    assert xp.array_equal(block_matrix.block(1, 1), 2 * xp.eye(3))

    with pytest.raises(DimensionMismatch):
        BlockMatrix.from_blocks(diagonal, [])


def test_arithmetic(block_matrix: BlockMatrix, dense: NDArray):
    """Tests the dense arithmetic of block matrices."""
    assert xp.allclose(block_matrix + block_matrix, 2 * dense)
    assert xp.allclose(block_matrix - dense, 0)
    assert xp.allclose(-block_matrix, -dense)
    assert xp.allclose(block_matrix @ block_matrix, dense @ dense)
    assert xp.allclose(dense @ block_matrix, dense @ dense)
    assert xp.allclose(xp.asarray(block_matrix), dense)

    block_matrix += 1.0
    assert xp.allclose(block_matrix.to_dense(), dense + 1.0)
    block_matrix -= block_matrix.copy()
    assert xp.allclose(block_matrix.to_dense(), 0)

    with pytest.raises(DimensionMismatch):
        block_matrix + xp.ones((1, 2))


def test_derived(block_matrix: BlockMatrix, dense: NDArray):
    """Tests adjoint, inverse, trace and the zero and identity helpers."""
    assert xp.allclose(block_matrix.adjoint().to_dense(), dense.conj().T)
    assert xp.isclose(block_matrix.trace(), xp.trace(dense))

    dominant = dense + 2 * dense.shape[0] * xp.eye(dense.shape[0])
    block_matrix.assign(dominant)
    assert xp.allclose(block_matrix.inverse() @ dominant, xp.eye(dense.shape[0]))

    assert not xp.any(block_matrix.as_zero().to_dense())
    assert xp.array_equal(
        block_matrix.as_identity().to_dense(), xp.eye(dense.shape[0])
    )
    assert block_matrix.as_zero().row_partition == block_matrix.row_partition

    view = block_matrix.subview(0, 0, 2, 2)
    view.set_zero()
    assert not xp.any(view.to_dense())
    block_matrix.reverse().set_identity()
    assert xp.array_equal(block_matrix.to_dense(), xp.eye(dense.shape[0]))
