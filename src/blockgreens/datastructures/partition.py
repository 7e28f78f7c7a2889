# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import operator

from blockgreens import ArrayLike, NDArray, xp
from blockgreens.exceptions import DimensionMismatch, IndexOutOfRange, InvalidPartition


class BlockPartition:
    """Immutable sequence of positive block sizes.

    A partition with sizes `s_0, ..., s_{k-1}` splits an axis of length
    `sum(s_i)` into `k` contiguous blocks. Block `i` starts at
    `offset(i) = s_0 + ... + s_{i-1}`. Negative block indices count
    from the end, i.e. `-1` is the last block.

    Parameters
    ----------
    sizes : ArrayLike | BlockPartition
        The block sizes.
    dimension : int, optional
        The length of the axis that is partitioned. If given, the sum
        of the block sizes may not exceed it. A smaller sum addresses
        the leading part of the axis.

    Raises
    ------
    InvalidPartition
        If the sizes are empty, not integral, not positive or exceed
        `dimension`.

    """

    __slots__ = ("_sizes", "_offsets")

    def __init__(
        self, sizes: "ArrayLike | BlockPartition", dimension: int | None = None
    ):
        """Initializes the block partition."""
        if isinstance(sizes, BlockPartition):
            sizes = sizes._sizes

        sizes = xp.asarray(sizes)
        if sizes.ndim != 1 or sizes.size == 0:
            raise InvalidPartition(
                f"Block sizes must be a non-empty 1D sequence, got shape {sizes.shape}."
            )
        if not xp.issubdtype(sizes.dtype, xp.integer):
            if not xp.issubdtype(sizes.dtype, xp.number) or xp.any(
                sizes != xp.round(sizes)
            ):
                raise InvalidPartition(f"Block sizes must be integers, got {sizes}.")
        sizes = sizes.astype(xp.int64)

        if xp.any(sizes <= 0):
            raise InvalidPartition(f"Block sizes must be positive, got {sizes}.")

        offsets = xp.hstack(([0], xp.cumsum(sizes))).astype(xp.int64)
        if dimension is not None and offsets[-1] > dimension:
            raise InvalidPartition(
                f"Block sizes sum to {offsets[-1]}, which exceeds the "
                f"dimension {dimension}."
            )

        sizes.flags.writeable = False
        offsets.flags.writeable = False
        self._sizes = sizes
        self._offsets = offsets

    @classmethod
    def uniform(cls, block_size: int, num_blocks: int) -> "BlockPartition":
        """Creates a partition of `num_blocks` equally sized blocks."""
        return cls(xp.full(num_blocks, block_size, dtype=xp.int64))

    @property
    def num_blocks(self) -> int:
        """The number of blocks."""
        return len(self._sizes)

    @property
    def sizes(self) -> NDArray:
        """The block sizes as a read-only array."""
        return self._sizes

    @property
    def offsets(self) -> NDArray:
        """The `num_blocks + 1` block offsets as a read-only array."""
        return self._offsets

    @property
    def total(self) -> int:
        """The sum of all block sizes."""
        return int(self._offsets[-1])

    def normalize(self, index: int) -> int:
        """Maps a possibly negative block index to its position.

        Parameters
        ----------
        index : int
            The block index. Negative values count from the end.

        Returns
        -------
        int
            The block index in `[0, num_blocks)`.

        Raises
        ------
        IndexOutOfRange
            If the index is out of bounds after normalization.

        """
        index = operator.index(index)
        num_blocks = len(self._sizes)
        if index < 0:
            index += num_blocks
        if not 0 <= index < num_blocks:
            raise IndexOutOfRange(
                f"Block index out of bounds for a partition of {num_blocks} blocks."
            )
        return index

    def size(self, index: int) -> int:
        """The size of block `index`."""
        return int(self._sizes[self.normalize(index)])

    def offset(self, index: int) -> int:
        """The offset of block `index`."""
        return int(self._offsets[self.normalize(index)])

    def block_slice(self, index: int) -> slice:
        """The slice of the partitioned axis covered by block `index`."""
        index = self.normalize(index)
        return slice(int(self._offsets[index]), int(self._offsets[index + 1]))

    def reversed(self) -> "BlockPartition":
        """Returns the mirrored partition."""
        return BlockPartition(self._sizes[::-1])

    def splice(
        self, start: int, count: int, other: "BlockPartition"
    ) -> "BlockPartition":
        """Replaces a contiguous range of blocks by another partition.

        Parameters
        ----------
        start : int
            The first block to replace.
        count : int
            The number of blocks to replace.
        other : BlockPartition
            The partition to insert in place of the replaced blocks.

        Returns
        -------
        BlockPartition
            The spliced partition.

        Raises
        ------
        IndexOutOfRange
            If the replaced range is not within the partition.
        DimensionMismatch
            If `other` does not cover the same length as the replaced
            blocks.

        """
        other = BlockPartition(other)
        if count < 1 or start < 0 or start + count > self.num_blocks:
            raise IndexOutOfRange(
                f"Cannot replace blocks [{start}, {start + count}) of a "
                f"partition of {self.num_blocks} blocks."
            )

        replaced = int(self._offsets[start + count] - self._offsets[start])
        if replaced != other.total:
            raise DimensionMismatch(
                f"Replacement blocks sum to {other.total}, expected {replaced}."
            )

        return BlockPartition(
            xp.concatenate(
                (self._sizes[:start], other.sizes, self._sizes[start + count :])
            )
        )

    def __len__(self) -> int:
        return len(self._sizes)

    def __iter__(self):
        return (int(size) for size in self._sizes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockPartition):
            return NotImplemented
        return self._sizes.shape == other._sizes.shape and bool(
            xp.all(self._sizes == other._sizes)
        )

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"BlockPartition({list(self)})"
