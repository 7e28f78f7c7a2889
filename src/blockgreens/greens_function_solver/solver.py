# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
from abc import ABC, abstractmethod
from enum import Enum

from blockgreens import ArrayLike, NDArray
from blockgreens.datastructures import BlockMatrix, BlockMatrixBase, BlockPartition
from blockgreens.ensemble import (
    MatrixEnsemble,
    ProgressCallback,
    UnitResult,
    solve_ensemble,
)
from blockgreens.exceptions import DimensionMismatch
from blockgreens.profiling import Profiler

profiler = Profiler()

logger = logging.getLogger(__name__)


class InverseMode(Enum):
    """Selects which part of the inverse is computed."""

    FULL_MATRIX = "full_matrix"
    FIRST_BLOCK = "first_block"
    LAST_BLOCK = "last_block"
    FIRST_BLOCK_COLUMN = "first_block_column"
    LAST_BLOCK_COLUMN = "last_block_column"


def as_block_matrix(
    a: BlockMatrixBase | ArrayLike,
    block_sizes: ArrayLike | BlockPartition | None = None,
) -> BlockMatrixBase:
    """Wraps a dense matrix into a block matrix without copying.

    Block matrices are returned unchanged unless `block_sizes` is
    given, in which case their active range is re-partitioned on a new
    owner.

    """
    if isinstance(a, BlockMatrixBase):
        if block_sizes is None:
            return a
        return BlockMatrix(a.to_dense(), block_sizes, copy=False)
    return BlockMatrix(a, block_sizes, copy=False)


class GFSolver(ABC):
    """Abstract base class for the Green's function solvers.

    A Green's function solver computes parts of the inverse of a
    block-tridiagonal system matrix `A`. Only the diagonal and the
    nearest-neighbour blocks of `A` are read.

    """

    @abstractmethod
    def full_matrix(self, a: BlockMatrixBase) -> NDArray:
        """Computes the whole inverse."""
        ...

    @abstractmethod
    def first_block(self, a: BlockMatrixBase) -> NDArray:
        """Computes the first diagonal block `G_{0,0}` of the inverse."""
        ...

    @abstractmethod
    def last_block(self, a: BlockMatrixBase) -> NDArray:
        """Computes the last diagonal block `G_{k-1,k-1}` of the inverse."""
        ...

    @abstractmethod
    def first_block_column(self, a: BlockMatrixBase) -> NDArray:
        """Computes the first block column `G_{:,0}` of the inverse."""
        ...

    @abstractmethod
    def last_block_column(self, a: BlockMatrixBase) -> NDArray:
        """Computes the last block column `G_{:,k-1}` of the inverse."""
        ...

    @profiler.profile(level="api")
    def compute(
        self,
        a: BlockMatrixBase | ArrayLike,
        mode: InverseMode | str = InverseMode.FULL_MATRIX,
        block_sizes: ArrayLike | BlockPartition | None = None,
    ) -> NDArray:
        """Computes the requested part of the inverse of a matrix.

        Parameters
        ----------
        a : BlockMatrixBase | ArrayLike
            The block-tridiagonal matrix to invert.
        mode : InverseMode | str, optional
            The part of the inverse to compute, by default the full
            matrix.
        block_sizes : ArrayLike | BlockPartition, optional
            The block sizes to partition `a` with. By default the
            partition of `a` is used.

        Returns
        -------
        NDArray
            The requested part of the inverse. Block columns have shape
            `(n, s)` where `s` is the size of the selected block.

        Raises
        ------
        DimensionMismatch
            If the matrix does not have square diagonal blocks.
        SingularBlock
            If a block that needs to be inverted is singular.

        """
        a = as_block_matrix(a, block_sizes)
        if not a.is_square():
            raise DimensionMismatch(
                f"Expected a square matrix with square diagonal blocks, got {a!r}."
            )

        mode = InverseMode(mode)
        logger.debug(
            "%s: %s of a matrix with %d blocks.",
            self.__class__.__name__,
            mode.value,
            a.num_block_rows,
        )
        return getattr(self, mode.value)(a)

    def compute_ensemble(
        self,
        ensemble: MatrixEnsemble | ArrayLike,
        mode: InverseMode | str = InverseMode.FULL_MATRIX,
        block_sizes: ArrayLike | BlockPartition | None = None,
        num_workers: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> list[UnitResult]:
        """Computes the requested part of the inverse for many matrices.

        Parameters
        ----------
        ensemble : MatrixEnsemble | ArrayLike
            The matrices. Anything else than a `MatrixEnsemble` is
            wrapped into one.
        mode : InverseMode | str, optional
            The part of the inverse to compute, by default the full
            matrix.
        block_sizes : ArrayLike | BlockPartition, optional
            Common block sizes of the matrices when wrapping them into
            an ensemble.
        num_workers : int, optional
            The number of worker threads.
        progress_callback : Callable[[float], None], optional
            Receives the completed fraction of matrices.

        Returns
        -------
        list[UnitResult]
            One result per matrix. Matrices with a singular block carry
            the error instead of a value.

        """
        if not isinstance(ensemble, MatrixEnsemble):
            ensemble = MatrixEnsemble(ensemble, block_sizes=block_sizes)
        mode = InverseMode(mode)

        def _unit(a: BlockMatrixBase) -> tuple[NDArray, bool]:
            return self.compute(a, mode), True

        return solve_ensemble(
            ensemble,
            _unit,
            num_workers=num_workers,
            progress_callback=progress_callback,
        )
