# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens import NDArray, xp
from blockgreens.datastructures import BlockMatrixBase
from blockgreens.greens_function_solver.solver import GFSolver
from blockgreens.kernels.linalg import inv


class RGF(GFSolver):
    r"""Partial inversion solver based on the Schur complement.

    The forward sweep eliminates the blocks from the top-left corner.
    With \(\sigma_0 = 0\) it computes the left-connected blocks

    \[
        g_b = (A_{bb} - \sigma_b)^{-1}, \quad
        \sigma_{b+1} = A_{b+1,b} g_b A_{b,b+1},
    \]

    where the last left-connected block equals the last diagonal block
    of the inverse. The last block column follows from the backward
    substitution

    \[
        G_{b,k-1} = -g_b A_{b,b+1} G_{b+1,k-1}.
    \]

    The first block and the first block column are obtained by running
    the same recursions on the block-mirrored matrix.

    """

    def _forward_sweep(
        self, a: BlockMatrixBase, keep_all: bool = False, mirrored: bool = False
    ) -> list[NDArray | None]:
        """Computes the left-connected diagonal blocks.

        Parameters
        ----------
        a : BlockMatrixBase
            The matrix to invert.
        keep_all : bool, optional
            Whether to keep all left-connected blocks, or just the last
            one. By default False.
        mirrored : bool, optional
            Whether `a` is the block-mirrored version of the caller's
            matrix. Singular blocks are then reported with mirrored
            indices. By default False.

        Returns
        -------
        list[NDArray | None]
            The left-connected blocks. Only the last entry is set if
            `keep_all` is False.

        """
        num_blocks = a.num_block_rows

        def block_index(b: int) -> int:
            return num_blocks - 1 - b if mirrored else b

        x_diag_blocks: list[NDArray | None] = [None] * num_blocks

        x_diag_blocks[0] = inv(a.blocks[0, 0], block_index=block_index(0))
        for i in range(num_blocks - 1):
            j = i + 1

            sigma_jj = a.blocks[j, i] @ x_diag_blocks[i] @ a.blocks[i, j]
            x_diag_blocks[j] = inv(
                a.blocks[j, j] - sigma_jj, block_index=block_index(j)
            )

            if not keep_all:
                x_diag_blocks[i] = None

        return x_diag_blocks

    def _last_block_column(
        self, a: BlockMatrixBase, mirrored: bool = False
    ) -> list[NDArray]:
        """Computes the blocks of the last block column."""
        x_diag_blocks = self._forward_sweep(a, keep_all=True, mirrored=mirrored)

        x_col_blocks: list[NDArray | None] = [None] * a.num_block_rows
        x_col_blocks[-1] = x_diag_blocks[-1]

        # Backwards substitution.
        for i in range(a.num_block_rows - 2, -1, -1):
            j = i + 1
            x_col_blocks[i] = -x_diag_blocks[i] @ a.blocks[i, j] @ x_col_blocks[j]

        return x_col_blocks

    def full_matrix(self, a: BlockMatrixBase) -> NDArray:
        """Computes the whole inverse by dense inversion."""
        return inv(a.to_dense())

    def last_block(self, a: BlockMatrixBase) -> NDArray:
        """Computes the last diagonal block of the inverse."""
        return self._forward_sweep(a)[-1]

    def first_block(self, a: BlockMatrixBase) -> NDArray:
        """Computes the first diagonal block of the inverse."""
        return self._forward_sweep(a.reverse(), mirrored=True)[-1]

    def last_block_column(self, a: BlockMatrixBase) -> NDArray:
        """Computes the last block column of the inverse."""
        return xp.vstack(self._last_block_column(a))

    def first_block_column(self, a: BlockMatrixBase) -> NDArray:
        """Computes the first block column of the inverse."""
        x_col_blocks = self._last_block_column(a.reverse(), mirrored=True)
        return xp.vstack(x_col_blocks[::-1])
