# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
import time
import warnings
from dataclasses import dataclass

from blockgreens import NDArray, xp
from blockgreens.exceptions import DimensionMismatch, NotConvergedWarning
from blockgreens.kernels.linalg import inv
from blockgreens.obc.obc import OBCSolver, Orientation
from blockgreens.profiling import Profiler

profiler = Profiler()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecimationResult:
    """Surface Green's function and convergence information.

    Attributes
    ----------
    x_ii : NDArray
        The surface Green's function.
    converged : bool
        Whether the coupling blocks fell below the tolerance and the
        result satisfies the surface recursion.
    num_iterations : int
        The number of decimation steps performed.
    delta : float
        The largest absolute entry of the final coupling blocks.
    residual : float
        The relative residual of the surface recursion, i.e. the
        largest absolute entry of `x_ii - (a_ii - alpha x_ii beta)^-1`
        divided by the largest absolute entry of `x_ii`.

    """

    x_ii: NDArray
    converged: bool
    num_iterations: int
    delta: float
    residual: float


class SanchoRubio(OBCSolver):
    """Calculates the surface Green's function iteratively.[^1].

    Every step of the decimation eliminates every second cell of the
    chain, which doubles the effective coupling range. The iteration
    stops once the renormalized couplings vanish.

    [^1]: M P Lopez Sancho et al., "Highly convergent schemes for the
    calculation of bulk and surface Green functions", 1985 J. Phys. F:
    Met. Phys. 15 851

    Parameters
    ----------
    max_iterations : int, optional
        The maximum number of iterations to perform.
    convergence_tol : float, optional
        The convergence tolerance for the iterative scheme. The
        criterion for convergence is that the largest absolute entry of
        both update matrices `alpha` and `beta` is less than this value.
    residual_tol : float, optional
        The largest relative residual of the surface recursion that is
        accepted for a converged result. The doubling loses precision if
        the broadening of the system matrix is tiny compared to the
        couplings, which this check detects.

    """

    def __init__(
        self,
        max_iterations: int = 100,
        convergence_tol: float = 1e-10,
        residual_tol: float = 1e-6,
    ):
        """Initializes the Sancho-Rubio OBC."""
        if max_iterations < 0:
            raise ValueError(f"Invalid number of iterations {max_iterations}.")
        self.max_iterations = max_iterations
        self.convergence_tol = convergence_tol
        self.residual_tol = residual_tol

    @profiler.profile(level="api")
    def solve(
        self,
        a_ii: NDArray,
        a_ij: NDArray,
        a_ji: NDArray | None = None,
        orientation: Orientation | str = Orientation.FROM_LEFT,
    ) -> DecimationResult:
        """Computes the surface Green's function.

        Parameters
        ----------
        a_ii : NDArray
            Diagonal boundary block of a system matrix.
        a_ij : NDArray
            Superdiagonal boundary block of a system matrix.
        a_ji : NDArray, optional
            Subdiagonal boundary block of a system matrix. By default
            the conjugate transpose of `a_ij`.
        orientation : Orientation | str, optional
            The side on which the chain extends, by default
            `FROM_LEFT`.

        Returns
        -------
        DecimationResult
            The surface Green's function together with the convergence
            information. Reaching `max_iterations` is not an error, the
            best estimate is returned with `converged` set to False.

        Raises
        ------
        DimensionMismatch
            If the blocks are not square or not of equal shape.
        SingularBlock
            If a matrix inversion fails during the decimation.

        """
        a_ii = xp.asarray(a_ii)
        a_ij = xp.asarray(a_ij)
        a_ji = a_ij.conj().T if a_ji is None else xp.asarray(a_ji)
        if (
            a_ii.ndim != 2
            or a_ii.shape[0] != a_ii.shape[1]
            or a_ij.shape != a_ii.shape
            or a_ji.shape != a_ii.shape
        ):
            raise DimensionMismatch(
                f"Boundary blocks must be square and of equal shape, got "
                f"{a_ii.shape}, {a_ij.shape} and {a_ji.shape}."
            )

        if Orientation(orientation) is Orientation.FROM_LEFT:
            alpha, beta = a_ji.copy(), a_ij.copy()
        else:
            alpha, beta = a_ij.copy(), a_ji.copy()
        coupling_in, coupling_out = alpha, beta

        epsilon = a_ii.copy()
        epsilon_s = a_ii.copy()
        inverse = inv(epsilon)

        tic = time.perf_counter()
        num_iterations = 0
        delta = max(float(xp.abs(alpha).max()), float(xp.abs(beta).max()))
        while delta >= self.convergence_tol and num_iterations < self.max_iterations:
            alpha_inverse_beta = alpha @ inverse @ beta

            epsilon = epsilon - alpha_inverse_beta - beta @ inverse @ alpha
            epsilon_s = epsilon_s - alpha_inverse_beta

            alpha = alpha @ inverse @ alpha
            beta = beta @ inverse @ beta

            inverse = inv(epsilon)

            num_iterations += 1
            delta = max(float(xp.abs(alpha).max()), float(xp.abs(beta).max()))

        # Fold in the couplings that are left over.
        epsilon_s = epsilon_s - alpha @ inverse @ beta
        x_ii = inv(epsilon_s)
        toc = time.perf_counter()

        x_next = inv(a_ii - coupling_in @ x_ii @ coupling_out)
        scale = max(float(xp.abs(x_ii).max()), float(xp.finfo(xp.float64).tiny))
        residual = float(xp.abs(x_ii - x_next).max()) / scale

        converged = delta < self.convergence_tol and residual < self.residual_tol
        if converged:
            logger.debug(
                "Surface Green's function converged after %d iterations in %.3e s.",
                num_iterations,
                toc - tic,
            )
        else:
            logger.warning(
                "Surface Green's function did not converge after %d iterations "
                "(delta = %.3e, residual = %.3e).",
                num_iterations,
                delta,
                residual,
            )

        return DecimationResult(x_ii, converged, num_iterations, delta, residual)

    def __call__(
        self,
        a_ii: NDArray,
        a_ij: NDArray,
        a_ji: NDArray | None = None,
        orientation: Orientation | str = Orientation.FROM_LEFT,
        out: None | NDArray = None,
    ) -> NDArray | None:
        """Returns the surface Green's function.

        Issues a `NotConvergedWarning` if the iteration limit is
        reached or the result does not satisfy the surface recursion.
        See `solve` for the parameters.

        """
        result = self.solve(a_ii, a_ij, a_ji, orientation)
        if not result.converged:
            warnings.warn(
                NotConvergedWarning(
                    f"Surface Green's function did not converge "
                    f"(residual = {result.residual:.3e}).",
                    result.num_iterations,
                    result.delta,
                ),
                stacklevel=2,
            )

        if out is not None:
            out[...] = result.x_ii
            return

        return result.x_ii
