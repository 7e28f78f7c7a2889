# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from abc import ABC, abstractmethod
from collections.abc import Sequence

from blockgreens import ArrayLike, NDArray, sparse, xp
from blockgreens.datastructures.partition import BlockPartition
from blockgreens.exceptions import (
    DimensionMismatch,
    IndexOutOfRange,
    PartitionMismatch,
)
from blockgreens.kernels.linalg import inv


class BlockMatrixBase(ABC):
    """Base class for block-partitioned dense matrices.

    A block matrix is a dense two-dimensional buffer together with a
    row and a column partition. Blocks are addressed by their block row
    and block column index, negative indices count from the end.

    The base class carries the shared view machinery. Every block
    matrix addresses an active, contiguous range of blocks of the full
    partitions of the underlying buffer. The active range can further
    be traversed in mirrored block order (see `reverse`).

    There are exactly two concrete kinds of block matrices:

    - `BlockMatrix` owns its buffer and may be re-partitioned.
    - `BlockMatrixView` aliases the buffer of a `BlockMatrix`. Writing
      through a view writes into the owner's buffer.

    """

    _owner: "BlockMatrix"
    _data: NDArray
    _full_rows: BlockPartition
    _full_cols: BlockPartition
    _rows: tuple[int, int]
    _cols: tuple[int, int]
    _reversed: bool

    def _update_active(self) -> None:
        """Recomputes the partitions of the active block range."""
        rows = self._full_rows.sizes[self._rows[0] : self._rows[1]]
        cols = self._full_cols.sizes[self._cols[0] : self._cols[1]]
        if self._reversed:
            rows, cols = rows[::-1], cols[::-1]

        self._active_rows = BlockPartition(rows)
        self._active_cols = BlockPartition(cols)

    def _row_position(self, row: int) -> int:
        """Maps a block row of the active range to the full partition."""
        row = self._active_rows.normalize(row)
        if self._reversed:
            return self._rows[1] - 1 - row
        return self._rows[0] + row

    def _col_position(self, col: int) -> int:
        """Maps a block column of the active range to the full partition."""
        col = self._active_cols.normalize(col)
        if self._reversed:
            return self._cols[1] - 1 - col
        return self._cols[0] + col

    def _block_slices(self, row: int, col: int) -> tuple[slice, slice]:
        """Returns the buffer slices of block `(row, col)`."""
        return (
            self._full_rows.block_slice(self._row_position(row)),
            self._full_cols.block_slice(self._col_position(col)),
        )

    def _region(self) -> tuple[slice, slice]:
        """Returns the buffer slices of the active range."""
        row_offsets = self._full_rows.offsets
        col_offsets = self._full_cols.offsets
        return (
            slice(int(row_offsets[self._rows[0]]), int(row_offsets[self._rows[1]])),
            slice(int(col_offsets[self._cols[0]]), int(col_offsets[self._cols[1]])),
        )

    def _write_dense(self, arr: NDArray) -> None:
        """Writes a dense array of the active shape into the buffer."""
        if arr.shape != self.shape:
            raise DimensionMismatch(
                f"Cannot write an array of shape {arr.shape} into a block "
                f"matrix of shape {self.shape}."
            )
        if not self._reversed:
            self._data[self._region()] = arr
            return

        for i in range(self.num_block_rows):
            for j in range(self.num_block_cols):
                self._data[self._block_slices(i, j)] = arr[
                    self._active_rows.block_slice(i), self._active_cols.block_slice(j)
                ]

    def _spawn_view(
        self, rows: tuple[int, int], cols: tuple[int, int], reversed: bool
    ) -> "BlockMatrixView":
        """Creates a view on the given range of the full partitions.

        The ranges are given in active (possibly mirrored) block
        coordinates.

        """
        view = BlockMatrixView(self)
        if self._reversed:
            view._rows = (self._rows[1] - rows[1], self._rows[1] - rows[0])
            view._cols = (self._cols[1] - cols[1], self._cols[1] - cols[0])
        else:
            view._rows = (self._rows[0] + rows[0], self._rows[0] + rows[1])
            view._cols = (self._cols[0] + cols[0], self._cols[0] + cols[1])
        view._reversed = reversed
        view._update_active()
        return view

    @abstractmethod
    def copy(self) -> "BlockMatrixBase":
        """Copies the block matrix."""
        ...

    @abstractmethod
    def assign(self, other: "BlockMatrixBase | ArrayLike") -> "BlockMatrixBase":
        """Assigns the data of another matrix."""
        ...

    @property
    def owner(self) -> "BlockMatrix":
        """The block matrix that owns the underlying buffer."""
        return self._owner

    @property
    def shape(self) -> tuple[int, int]:
        """The shape of the active range."""
        return (self._active_rows.total, self._active_cols.total)

    @property
    def dtype(self) -> xp.dtype:
        """The data type of the underlying buffer."""
        return self._data.dtype

    @property
    def is_reversed(self) -> bool:
        """Whether blocks are addressed in mirrored order."""
        return self._reversed

    @property
    def row_partition(self) -> BlockPartition:
        """The block row partition of the active range."""
        return self._active_rows

    @property
    def col_partition(self) -> BlockPartition:
        """The block column partition of the active range."""
        return self._active_cols

    @property
    def num_block_rows(self) -> int:
        """The number of block rows in the active range."""
        return self._active_rows.num_blocks

    @property
    def num_block_cols(self) -> int:
        """The number of block columns in the active range."""
        return self._active_cols.num_blocks

    @property
    def block_row_sizes(self) -> NDArray:
        return self._active_rows.sizes

    @property
    def block_col_sizes(self) -> NDArray:
        return self._active_cols.sizes

    @property
    def block_row_offsets(self) -> NDArray:
        return self._active_rows.offsets

    @property
    def block_col_offsets(self) -> NDArray:
        return self._active_cols.offsets

    @property
    def blocks(self) -> "_BlockIndexer":
        """Returns a block indexer.

        Integer indices return writable views of single blocks, slices
        return a `BlockMatrixView` over a block range.

        """
        return _BlockIndexer(self)

    @property
    def matrix(self) -> NDArray:
        """Writable array view of the active range.

        Raises
        ------
        ValueError
            If the block matrix is reversed. Mirrored blocks do not form
            a contiguous region of the buffer, use `to_dense` instead.

        """
        if self._reversed:
            raise ValueError("A reversed block matrix has no contiguous region.")
        return self._data[self._region()]

    def block(self, row: int, col: int) -> NDArray:
        """Returns a writable view of block `(row, col)`.

        Parameters
        ----------
        row : int
            The block row index. Negative values count from the end.
        col : int
            The block column index. Negative values count from the end.

        Returns
        -------
        NDArray
            The block. Writing into it writes into the buffer.

        """
        return self._data[self._block_slices(row, col)]

    def set_block(self, row: int, col: int, block: ArrayLike) -> None:
        """Overwrites block `(row, col)` with the given values."""
        rows, cols = self._block_slices(row, col)
        block = xp.asarray(block)
        expected = (rows.stop - rows.start, cols.stop - cols.start)
        if block.shape != expected and block.ndim != 0:
            raise DimensionMismatch(
                f"Block ({row}, {col}) has shape {expected}, got {block.shape}."
            )
        self._data[rows, cols] = block

    def block_diagonal(self, offset: int = 0) -> list[NDArray]:
        """Returns the blocks on the given block diagonal.

        Parameters
        ----------
        offset : int, optional
            Offset from the main block diagonal. Positive values refer
            to super-diagonals, by default 0.

        Returns
        -------
        list[NDArray]
            The blocks, ordered from top-left to bottom-right.

        """
        num_blocks = min(self.num_block_rows, self.num_block_cols)
        return [
            self.block(i, i + offset)
            for i in range(max(0, -offset), num_blocks - max(0, offset))
        ]

    def subview(
        self, row: int, col: int, row_count: int = 1, col_count: int = 1
    ) -> "BlockMatrixView":
        """Returns a view over a contiguous range of blocks.

        Parameters
        ----------
        row : int
            The first block row. Negative values count from the end.
        col : int
            The first block column. Negative values count from the end.
        row_count : int, optional
            The number of block rows. A negative count selects the
            `-row_count` block rows preceding `row`, i.e. the range
            `[row + row_count, row)`. By default 1.
        col_count : int, optional
            The number of block columns, signed like `row_count`. By
            default 1.

        Returns
        -------
        BlockMatrixView
            A view aliasing the buffer.

        Raises
        ------
        IndexOutOfRange
            If a count is zero or the range leaves the active range.

        """
        rows = _signed_range(row, row_count, self.num_block_rows)
        cols = _signed_range(col, col_count, self.num_block_cols)
        return self._spawn_view(rows, cols, self._reversed)

    def view(self) -> "BlockMatrixView":
        """Returns a view over the whole active range."""
        return BlockMatrixView(self)

    def reverse(self) -> "BlockMatrixView":
        """Returns a view with mirrored block indexing.

        Block `(i, j)` of the returned view is block
        `(num_block_rows - 1 - i, num_block_cols - 1 - j)` of this
        matrix. The contents of the blocks are not flipped.

        """
        view = BlockMatrixView(self)
        view._reversed = not self._reversed
        view._update_active()
        return view

    def with_blocks(self, other) -> "BlockMatrixBase":
        """Replaces the partition of the active range.

        The new block sizes are spliced into the full partitions, so
        only the active range is re-partitioned.

        Parameters
        ----------
        other : BlockMatrixBase | BlockPartition | tuple
            The block matrix whose active partitions are adopted, a
            partition used for both rows and columns, or a pair of row
            and column partitions.

        Returns
        -------
        BlockMatrixBase
            This block matrix.

        Raises
        ------
        DimensionMismatch
            If the new partitions do not cover the active range.

        """
        if isinstance(other, BlockMatrixBase):
            rows, cols = other.row_partition, other.col_partition
        elif isinstance(other, tuple) and len(other) == 2:
            rows, cols = BlockPartition(other[0]), BlockPartition(other[1])
        else:
            rows = cols = BlockPartition(other)

        if rows.total != self.shape[0] or cols.total != self.shape[1]:
            raise DimensionMismatch(
                f"Partitions of shape {(rows.total, cols.total)} do not cover "
                f"the active range of shape {self.shape}."
            )

        if self._reversed:
            rows, cols = rows.reversed(), cols.reversed()

        start, stop = self._rows
        self._full_rows = self._full_rows.splice(start, stop - start, rows)
        self._rows = (start, start + rows.num_blocks)

        start, stop = self._cols
        self._full_cols = self._full_cols.splice(start, stop - start, cols)
        self._cols = (start, start + cols.num_blocks)

        self._update_active()
        return self

    def to_dense(self) -> NDArray:
        """Returns a dense copy of the active range."""
        if not self._reversed:
            return self._data[self._region()].copy()

        arr = xp.empty(self.shape, dtype=self.dtype)
        for i in range(self.num_block_rows):
            for j in range(self.num_block_cols):
                arr[
                    self._active_rows.block_slice(i), self._active_cols.block_slice(j)
                ] = self.block(i, j)
        return arr

    def materialize(self) -> "BlockMatrix":
        """Returns a new owner holding a copy of the active range."""
        return BlockMatrix(
            self.to_dense(), self._active_rows, self._active_cols, copy=False
        )

    def is_square(self, also_square_blocks: bool = True) -> bool:
        """Checks whether the matrix is square.

        Parameters
        ----------
        also_square_blocks : bool, optional
            Additionally require identical row and column partitions,
            i.e. square diagonal blocks. By default True.

        """
        if self.shape[0] != self.shape[1]:
            return False
        if also_square_blocks:
            return self._active_rows == self._active_cols
        return True

    def trace(self) -> complex:
        """Returns the trace of the active range."""
        if not self.is_square(also_square_blocks=False):
            raise DimensionMismatch(f"Trace of a non-square matrix {self.shape}.")
        return xp.trace(self.to_dense())

    def adjoint(self) -> "BlockMatrix":
        """Returns the conjugate transpose as a new owner."""
        return BlockMatrix(
            self.to_dense().conj().T, self._active_cols, self._active_rows, copy=True
        )

    def inverse(self) -> "BlockMatrix":
        """Returns the inverse as a new owner.

        Raises
        ------
        DimensionMismatch
            If the matrix is not square.
        SingularBlock
            If the matrix is singular.

        """
        if not self.is_square(also_square_blocks=False):
            raise DimensionMismatch(f"Cannot invert a matrix of shape {self.shape}.")
        return BlockMatrix(
            inv(self.to_dense()), self._active_cols, self._active_rows, copy=False
        )

    def as_zero(self) -> "BlockMatrix":
        """Returns a zero owner with the same partitions."""
        return BlockMatrix.zeros(self._active_rows, self._active_cols, self.dtype)

    def as_identity(self) -> "BlockMatrix":
        """Returns an identity owner with the same partitions."""
        out = self.as_zero()
        out.set_identity()
        return out

    def set_zero(self) -> None:
        """Sets the active range to zero."""
        self._write_dense(xp.zeros(self.shape, dtype=self.dtype))

    def set_identity(self) -> None:
        """Sets the active range to the identity."""
        self._write_dense(xp.eye(*self.shape, dtype=self.dtype))

    def __iadd__(self, other) -> "BlockMatrixBase":
        self._write_dense(self.to_dense() + _as_dense(other, self.shape))
        return self

    def __isub__(self, other) -> "BlockMatrixBase":
        self._write_dense(self.to_dense() - _as_dense(other, self.shape))
        return self

    def __add__(self, other) -> NDArray:
        return self.to_dense() + _as_dense(other, self.shape)

    def __sub__(self, other) -> NDArray:
        return self.to_dense() - _as_dense(other, self.shape)

    def __neg__(self) -> NDArray:
        return -self.to_dense()

    def __matmul__(self, other) -> NDArray:
        if isinstance(other, BlockMatrixBase):
            other = other.to_dense()
        return self.to_dense() @ other

    def __rmatmul__(self, other) -> NDArray:
        return other @ self.to_dense()

    def __array__(self, dtype=None, copy=None) -> NDArray:
        arr = self.to_dense()
        if dtype is not None:
            arr = arr.astype(dtype, copy=False)
        return arr

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(shape={self.shape}, "
            f"block_row_sizes={list(self._active_rows)}, "
            f"block_col_sizes={list(self._active_cols)}, "
            f"reversed={self._reversed}, dtype={self.dtype})"
        )


class BlockMatrix(BlockMatrixBase):
    """Block matrix owning its buffer.

    Parameters
    ----------
    data : ArrayLike
        The dense matrix. Sparse matrices are densified.
    block_sizes : ArrayLike | BlockPartition, optional
        The block row sizes. If they sum to less than the number of
        rows, the partition covers the leading rows only. By default the
        matrix is a single block.
    col_block_sizes : ArrayLike | BlockPartition, optional
        The block column sizes. Defaults to `block_sizes` if those are
        given, otherwise to a single block.
    copy : bool, optional
        Whether to copy `data`, by default True.
    dtype : xp.dtype, optional
        The data type of the buffer. By default the type of `data`.

    Raises
    ------
    DimensionMismatch
        If `data` is not two-dimensional.
    InvalidPartition
        If the block sizes are invalid for the shape of `data`.

    """

    def __init__(
        self,
        data: ArrayLike,
        block_sizes: ArrayLike | BlockPartition | None = None,
        col_block_sizes: ArrayLike | BlockPartition | None = None,
        copy: bool = True,
        dtype: xp.dtype | None = None,
    ) -> None:
        """Initializes the block matrix."""
        if sparse.issparse(data):
            data = data.toarray()
        data = xp.array(data, dtype=dtype) if copy else xp.asarray(data, dtype=dtype)

        if data.ndim != 2:
            raise DimensionMismatch(
                f"Block matrices are two-dimensional, got shape {data.shape}."
            )

        self._data = data
        self._owner = self
        self._reversed = False
        self.set_blocks(block_sizes, col_block_sizes)

    @classmethod
    def zeros(
        cls,
        block_sizes: ArrayLike | BlockPartition,
        col_block_sizes: ArrayLike | BlockPartition | None = None,
        dtype: xp.dtype = xp.complex128,
    ) -> "BlockMatrix":
        """Creates a zero matrix with the given partitions."""
        rows = BlockPartition(block_sizes)
        cols = rows if col_block_sizes is None else BlockPartition(col_block_sizes)
        return cls(
            xp.zeros((rows.total, cols.total), dtype=dtype), rows, cols, copy=False
        )

    @classmethod
    def from_blocks(
        cls,
        diagonal: Sequence[ArrayLike],
        upper: Sequence[ArrayLike] = (),
        lower: Sequence[ArrayLike] | None = None,
        dtype: xp.dtype = xp.complex128,
    ) -> "BlockMatrix":
        """Assembles a block-tridiagonal matrix.

        Parameters
        ----------
        diagonal : Sequence[ArrayLike]
            The `k` square diagonal blocks.
        upper : Sequence[ArrayLike], optional
            The `k - 1` super-diagonal blocks `(i, i + 1)`.
        lower : Sequence[ArrayLike], optional
            The `k - 1` sub-diagonal blocks `(i + 1, i)`. By default the
            conjugate transposes of the super-diagonal blocks.
        dtype : xp.dtype, optional
            The data type, by default complex128.

        Returns
        -------
        BlockMatrix
            The assembled block-tridiagonal matrix.

        """
        diagonal = [xp.asarray(block) for block in diagonal]
        upper = [xp.asarray(block) for block in upper]
        if lower is None:
            lower = [block.conj().T for block in upper]

        if len(upper) != len(diagonal) - 1 or len(lower) != len(diagonal) - 1:
            raise DimensionMismatch(
                f"Expected {len(diagonal) - 1} off-diagonal blocks, got "
                f"{len(upper)} upper and {len(lower)} lower blocks."
            )

        out = cls.zeros([block.shape[0] for block in diagonal], dtype=dtype)
        for i, block in enumerate(diagonal):
            out.set_block(i, i, block)
        for i in range(len(upper)):
            out.set_block(i, i + 1, upper[i])
            out.set_block(i + 1, i, lower[i])
        return out

    def set_blocks(
        self,
        block_sizes: ArrayLike | BlockPartition | None,
        col_block_sizes: ArrayLike | BlockPartition | None = None,
    ) -> None:
        """Re-partitions the matrix.

        Parameters
        ----------
        block_sizes : ArrayLike | BlockPartition | None
            The block row sizes. None resets to a single block.
        col_block_sizes : ArrayLike | BlockPartition, optional
            The block column sizes. Defaults to `block_sizes` if those
            are given, otherwise to a single block.

        Raises
        ------
        InvalidPartition
            If the sizes are invalid for the shape of the buffer.

        """
        num_rows, num_cols = self._data.shape
        if block_sizes is None:
            rows = BlockPartition([num_rows])
            cols = BlockPartition(
                [num_cols] if col_block_sizes is None else col_block_sizes, num_cols
            )
        else:
            rows = BlockPartition(block_sizes, num_rows)
            cols = BlockPartition(
                block_sizes if col_block_sizes is None else col_block_sizes, num_cols
            )

        self._full_rows = rows
        self._full_cols = cols
        self._rows = (0, rows.num_blocks)
        self._cols = (0, cols.num_blocks)
        self._update_active()

    def reset_blocks(self) -> None:
        """Resets the matrix to a single block."""
        self.set_blocks(None)

    def copy(self) -> "BlockMatrix":
        """Returns a deep copy with the same partitions."""
        return BlockMatrix(self._data, self._full_rows, self._full_cols, copy=True)

    __copy__ = copy

    def assign(self, other: "BlockMatrixBase | ArrayLike") -> "BlockMatrix":
        """Adopts the data, and partitions, of another matrix.

        A buffer of equal shape is overwritten in place, so views on
        this matrix observe the new data.

        Parameters
        ----------
        other : BlockMatrixBase | ArrayLike
            The source matrix. A block matrix also hands over its
            partitions. An array of different shape resets the matrix to
            a single block.

        Returns
        -------
        BlockMatrix
            This matrix.

        """
        if isinstance(other, BlockMatrixBase):
            rows, cols = other.row_partition, other.col_partition
            arr = other.to_dense()
        else:
            arr = xp.asarray(other)
            rows = cols = None
            if arr.ndim != 2:
                raise DimensionMismatch(
                    f"Block matrices are two-dimensional, got shape {arr.shape}."
                )

        reshaped = arr.shape != self._data.shape
        if reshaped:
            self._data = arr.astype(self._data.dtype, copy=True)
        else:
            self._data[...] = arr

        if rows is not None:
            self.set_blocks(rows, cols)
        elif reshaped:
            self.reset_blocks()
        return self


class BlockMatrixView(BlockMatrixBase):
    """Block matrix aliasing the buffer of a `BlockMatrix`.

    A view holds its own copies of the full partitions and of its
    active block range. Re-partitioning the owner does not affect
    existing views. Views can only be re-partitioned within their
    active range through `with_blocks`.

    Parameters
    ----------
    parent : BlockMatrixBase
        The block matrix to view. The new view covers the active range
        of `parent`.

    """

    def __init__(self, parent: BlockMatrixBase) -> None:
        """Initializes the view."""
        self._owner = parent._owner
        self._data = parent._data
        self._full_rows = parent._full_rows
        self._full_cols = parent._full_cols
        self._rows = parent._rows
        self._cols = parent._cols
        self._reversed = parent._reversed
        self._update_active()

    def copy(self) -> "BlockMatrixView":
        """Returns a new view aliasing the same buffer."""
        return BlockMatrixView(self)

    __copy__ = copy

    def assign(self, other: "BlockMatrixBase | ArrayLike") -> "BlockMatrixView":
        """Writes the data of another matrix into the viewed range.

        Parameters
        ----------
        other : BlockMatrixBase | ArrayLike
            The source matrix.

        Returns
        -------
        BlockMatrixView
            This view.

        Raises
        ------
        PartitionMismatch
            If `other` is a block matrix with different partitions.
        DimensionMismatch
            If `other` is an array of different shape.

        """
        if isinstance(other, BlockMatrixBase):
            if (
                other.row_partition != self._active_rows
                or other.col_partition != self._active_cols
            ):
                raise PartitionMismatch(
                    f"Cannot assign {other!r} to {self!r}: partitions differ."
                )
            other = other.to_dense()

        self._write_dense(xp.asarray(other))
        return self


class _BlockIndexer:
    """A utility class to locate blocks in a block matrix.

    Integer indices address single blocks, slices address block ranges.

    Parameters
    ----------
    matrix : BlockMatrixBase
        The underlying block matrix.

    """

    def __init__(self, matrix: BlockMatrixBase) -> None:
        """Initializes the block indexer."""
        self._matrix = matrix

    def _ranges(self, index: tuple) -> tuple[tuple[int, int], tuple[int, int]]:
        """Converts a mixed integer and slice index to block ranges."""
        row, col = index
        return (
            _index_range(row, self._matrix.num_block_rows),
            _index_range(col, self._matrix.num_block_cols),
        )

    @staticmethod
    def _check(index) -> tuple:
        if not isinstance(index, tuple) or len(index) != 2:
            raise IndexError("Exactly two block indices are required.")
        return index

    def __getitem__(self, index: tuple) -> "NDArray | BlockMatrixView":
        """Gets the requested block or block range."""
        row, col = self._check(index)
        if isinstance(row, slice) or isinstance(col, slice):
            rows, cols = self._ranges(index)
            return self._matrix._spawn_view(rows, cols, self._matrix.is_reversed)
        return self._matrix.block(row, col)

    def __setitem__(self, index: tuple, value) -> None:
        """Sets the requested block or block range."""
        row, col = self._check(index)
        if isinstance(row, slice) or isinstance(col, slice):
            self[index].assign(value)
            return
        self._matrix.set_block(row, col, value)


def _signed_range(start: int, count: int, num_blocks: int) -> tuple[int, int]:
    """Converts a start index and a signed count to a block range."""
    if count == 0:
        raise IndexOutOfRange("Block ranges must contain at least one block.")
    if start < 0:
        start += num_blocks
    if count > 0:
        begin, end = start, start + count
    else:
        begin, end = start + count, start
    if begin < 0 or end > num_blocks:
        raise IndexOutOfRange(
            f"Block range [{begin}, {end}) out of bounds for {num_blocks} blocks."
        )
    return begin, end


def _index_range(index: "int | slice", num_blocks: int) -> tuple[int, int]:
    """Converts an integer or a contiguous slice to a block range."""
    if isinstance(index, slice):
        if index.step not in (None, 1):
            raise IndexError("Only contiguous block slices are supported.")
        begin, end, __ = index.indices(num_blocks)
        if end <= begin:
            raise IndexOutOfRange("Block ranges must contain at least one block.")
        return begin, end

    return _signed_range(index, 1, num_blocks)


def _as_dense(other, shape: tuple[int, int]) -> NDArray:
    """Returns the dense array of an operand of the given shape."""
    if isinstance(other, BlockMatrixBase):
        other = other.to_dense()
    other = xp.asarray(other)
    if other.ndim != 0 and other.shape != shape:
        raise DimensionMismatch(
            f"Operand of shape {other.shape} does not match shape {shape}."
        )
    return other
