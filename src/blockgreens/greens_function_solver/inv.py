# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens import NDArray
from blockgreens.datastructures import BlockMatrixBase
from blockgreens.greens_function_solver.solver import GFSolver
from blockgreens.kernels.linalg import inv


class Inv(GFSolver):
    """Partial inversion solver based on dense matrix inversion.

    Warning
    -------
    This solver will densify the matrix to invert it. It is intended as
    a reference implementation and should not be used in production
    code.

    """

    def _inverse(self, a: BlockMatrixBase) -> NDArray:
        """Densifies and inverts the matrix."""
        return inv(a.to_dense())

    def full_matrix(self, a: BlockMatrixBase) -> NDArray:
        return self._inverse(a)

    def first_block(self, a: BlockMatrixBase) -> NDArray:
        first = a.row_partition.block_slice(0)
        return self._inverse(a)[first, first]

    def last_block(self, a: BlockMatrixBase) -> NDArray:
        last = a.row_partition.block_slice(-1)
        return self._inverse(a)[last, last]

    def first_block_column(self, a: BlockMatrixBase) -> NDArray:
        return self._inverse(a)[:, a.row_partition.block_slice(0)]

    def last_block_column(self, a: BlockMatrixBase) -> NDArray:
        return self._inverse(a)[:, a.row_partition.block_slice(-1)]
