# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens import SINGULAR_RCOND, NDArray, xp
from blockgreens.exceptions import SingularBlock
from blockgreens.profiling import Profiler

profiler = Profiler()


def rcond(a: NDArray, a_inv: NDArray) -> float:
    """Reciprocal 1-norm condition number of `a` given its inverse."""
    norm = float(xp.linalg.norm(a, 1)) * float(xp.linalg.norm(a_inv, 1))
    if norm == 0.0 or not xp.isfinite(norm):
        return 0.0
    return 1.0 / norm


@profiler.profile(level="debug")
def inv(
    a: NDArray,
    block_index: int | None = None,
    threshold: float = SINGULAR_RCOND,
) -> NDArray:
    """Computes the inverse of a square matrix.

    Parameters
    ----------
    a : NDArray
        The matrix to invert.
    block_index : int, optional
        The block index reported if the matrix is singular.
    threshold : float, optional
        Reciprocal condition number under which the matrix is treated
        as singular. By default the `SINGULAR_RCOND` setting.

    Returns
    -------
    NDArray
        The inverse of the matrix.

    Raises
    ------
    SingularBlock
        If the matrix is singular to working precision.

    """
    try:
        a_inv = xp.linalg.inv(a)
    except xp.linalg.LinAlgError as e:
        raise SingularBlock(block_index) from e

    if not xp.all(xp.isfinite(a_inv)) or rcond(a, a_inv) < threshold:
        raise SingularBlock(block_index)

    return a_inv
