# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens import xp


class BlockGreensError(Exception):
    """Base class for all errors raised by blockgreens."""


class InvalidPartition(BlockGreensError, ValueError):
    """A block partition is empty, has non-positive sizes, or exceeds
    the dimension of the matrix it partitions."""


class IndexOutOfRange(BlockGreensError, IndexError):
    """A block index or block range lies outside the partition."""


class DimensionMismatch(BlockGreensError, ValueError):
    """Operand dimensions are incompatible."""


class PartitionMismatch(DimensionMismatch):
    """Assignment into a view whose block partition differs from the
    source's block partition."""


class SingularBlock(BlockGreensError, xp.linalg.LinAlgError):
    """A block that has to be inverted is singular.

    Parameters
    ----------
    block_index : int, optional
        Index of the offending diagonal block. None if the matrix that
        failed to invert is not a diagonal block.
    message : str, optional
        Additional description of the failure.

    """

    def __init__(self, block_index: int | None = None, message: str = "") -> None:
        self.block_index = block_index
        if not message:
            message = (
                "Singular matrix."
                if block_index is None
                else f"Singular diagonal block at index {block_index}."
            )
        super().__init__(message)

    def __reduce__(self):
        return (self.__class__, (self.block_index, str(self)))


class NotConvergedWarning(RuntimeWarning):
    """An iterative scheme did not converge to a usable result.

    Parameters
    ----------
    message : str
        Warning message.
    num_iterations : int
        Number of iterations that were performed.
    delta : float
        Largest absolute entry of the last coupling update.

    """

    def __init__(self, message: str, num_iterations: int, delta: float) -> None:
        super().__init__(message)
        self.num_iterations = num_iterations
        self.delta = delta
