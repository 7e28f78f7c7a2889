# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
import warnings
from collections.abc import Sequence
from enum import Enum

from blockgreens import ArrayLike, NDArray, xp
from blockgreens.datastructures import BlockMatrix, BlockMatrixBase, BlockPartition
from blockgreens.ensemble import ProgressCallback, UnitResult, solve_ensemble
from blockgreens.exceptions import DimensionMismatch, NotConvergedWarning
from blockgreens.greens_function_solver import RGF, GFSolver, InverseMode
from blockgreens.greens_function_solver.solver import as_block_matrix
from blockgreens.obc import (
    DecimationResult,
    OBCSolver,
    Orientation,
    SanchoRubio,
    lead_self_energy,
)
from blockgreens.profiling import Profiler

profiler = Profiler()

logger = logging.getLogger(__name__)


class TransportDirection(Enum):
    """Direction in which the transmission is evaluated."""

    LEFT_TO_RIGHT = "left_to_right"
    RIGHT_TO_LEFT = "right_to_left"


def _broadening(sigma: NDArray) -> NDArray:
    """Returns the broadening matrix `i (sigma - sigma^dagger)`."""
    return 1j * (sigma - sigma.conj().T)


class TwoLeadTransport:
    r"""Landauer transmission through a device between two leads.

    The device is described by a block-tridiagonal Hamiltonian. Each
    lead is a periodic semi-infinite chain given by the Hamiltonian
    block of its unit cell and the coupling between consecutive cells.
    At energy \(E\), the leads enter through their self-energies

    \[
        \Sigma_L = V_L g_L V_L^\dagger, \quad
        \Sigma_R = V_R^\dagger g_R V_R,
    \]

    where \(g_{L,R}\) are the lead surface Green's functions, and the
    transmission from left to right is

    \[
        T(E) = \mathrm{Re}\,\mathrm{Tr}[\Gamma_L G_{0,k-1}
            \Gamma_R G_{0,k-1}^\dagger],
    \]

    with \(\Gamma = i (\Sigma - \Sigma^\dagger)\) and \(G\) the retarded
    Green's function of the device.

    Parameters
    ----------
    h_left : ArrayLike
        Hamiltonian block of a unit cell of the left lead.
    v_left_lead : ArrayLike
        Coupling `H_{n,n+1}` between consecutive cells of the left
        lead, i.e. from a cell to its right neighbour.
    h_right : ArrayLike
        Hamiltonian block of a unit cell of the right lead.
    v_right_lead : ArrayLike
        Coupling `H_{n,n+1}` between consecutive cells of the right
        lead.
    eta : float, optional
        Positive broadening added to the energy, by default 1e-6.
    obc_solver : OBCSolver, optional
        Solver for the lead surface Green's functions, by default
        `SanchoRubio()`.
    gf_solver : GFSolver, optional
        Solver for the device Green's function, by default `RGF()`.

    """

    def __init__(
        self,
        h_left: ArrayLike,
        v_left_lead: ArrayLike,
        h_right: ArrayLike,
        v_right_lead: ArrayLike,
        eta: float = 1e-6,
        obc_solver: OBCSolver | None = None,
        gf_solver: GFSolver | None = None,
    ) -> None:
        """Initializes the transport solver."""
        self.h_left = xp.asarray(h_left)
        self.v_left_lead = xp.asarray(v_left_lead)
        self.h_right = xp.asarray(h_right)
        self.v_right_lead = xp.asarray(v_right_lead)

        for name in ("h_left", "v_left_lead", "h_right", "v_right_lead"):
            block = getattr(self, name)
            if block.ndim != 2 or block.shape[0] != block.shape[1]:
                raise DimensionMismatch(f"'{name}' must be square, got {block.shape}.")
        if self.h_left.shape != self.v_left_lead.shape:
            raise DimensionMismatch("Left lead blocks differ in shape.")
        if self.h_right.shape != self.v_right_lead.shape:
            raise DimensionMismatch("Right lead blocks differ in shape.")
        if eta < 0:
            raise ValueError(f"The broadening must be non-negative, got {eta=}.")

        self.eta = eta
        self.obc_solver = SanchoRubio() if obc_solver is None else obc_solver
        self.gf_solver = RGF() if gf_solver is None else gf_solver

    def _lead_system_blocks(
        self, h: NDArray, v: NDArray, energy: float
    ) -> tuple[NDArray, NDArray, NDArray]:
        """Returns the system matrix blocks `(E + i eta) I - H` of a lead."""
        z = energy + 1j * self.eta
        a_ii = z * xp.eye(h.shape[0], dtype=xp.complex128) - h
        return a_ii, -v, -v.conj().T

    def _decimate(
        self, a_ii: NDArray, a_ij: NDArray, a_ji: NDArray, orientation: Orientation
    ) -> DecimationResult:
        """Runs the lead solver, recording convergence if available."""
        if isinstance(self.obc_solver, SanchoRubio):
            return self.obc_solver.solve(a_ii, a_ij, a_ji, orientation)

        x_ii = self.obc_solver(a_ii, a_ij, a_ji, orientation)
        return DecimationResult(x_ii, True, 0, 0.0, 0.0)

    def surface_greens_functions(
        self, energy: float
    ) -> tuple[DecimationResult, DecimationResult]:
        """Computes the surface Green's functions of both leads.

        Parameters
        ----------
        energy : float
            The energy.

        Returns
        -------
        tuple[DecimationResult, DecimationResult]
            The left and the right lead's surface Green's function.

        """
        g_left = self._decimate(
            *self._lead_system_blocks(self.h_left, self.v_left_lead, energy),
            Orientation.FROM_LEFT,
        )
        g_right = self._decimate(
            *self._lead_system_blocks(self.h_right, self.v_right_lead, energy),
            Orientation.FROM_RIGHT,
        )
        return g_left, g_right

    def self_energies(
        self, energy: float, v_left: ArrayLike, v_right: ArrayLike
    ) -> tuple[NDArray, NDArray]:
        """Computes the lead self-energies.

        Parameters
        ----------
        energy : float
            The energy.
        v_left : ArrayLike
            Coupling `H_{0,L}` from the first device block to the left
            lead surface.
        v_right : ArrayLike
            Coupling `H_{R,k-1}` from the right lead surface to the last
            device block.

        Returns
        -------
        tuple[NDArray, NDArray]
            The self-energies acting on the first and on the last device
            block.

        """
        sigma_left, sigma_right, *__ = self._self_energies(
            energy, xp.asarray(v_left), xp.asarray(v_right)
        )
        return sigma_left, sigma_right

    def _self_energies(
        self, energy: float, v_left: NDArray, v_right: NDArray
    ) -> tuple[NDArray, NDArray, DecimationResult, DecimationResult]:
        g_left, g_right = self.surface_greens_functions(energy)
        sigma_left = lead_self_energy(v_left, g_left.x_ii, Orientation.FROM_LEFT)
        sigma_right = lead_self_energy(v_right, g_right.x_ii, Orientation.FROM_RIGHT)
        return sigma_left, sigma_right, g_left, g_right

    def _check_couplings(
        self, h_device: BlockMatrixBase, v_left: NDArray, v_right: NDArray
    ) -> None:
        """Checks the device-lead couplings against the partition."""
        first = h_device.row_partition.size(0)
        last = h_device.row_partition.size(-1)
        if v_left.shape != (first, self.h_left.shape[0]):
            raise DimensionMismatch(
                f"Expected a left coupling of shape {(first, self.h_left.shape[0])}, "
                f"got {v_left.shape}."
            )
        if v_right.shape != (self.h_right.shape[0], last):
            raise DimensionMismatch(
                f"Expected a right coupling of shape {(self.h_right.shape[0], last)}, "
                f"got {v_right.shape}."
            )

    def _transmission(
        self,
        h_device: BlockMatrixBase,
        v_left: NDArray,
        v_right: NDArray,
        energy: float,
        direction: TransportDirection,
    ) -> tuple[float, tuple[DecimationResult, DecimationResult]]:
        """Computes the transmission and the lead surface solutions."""
        sigma_left, sigma_right, *leads = self._self_energies(
            energy, v_left, v_right
        )

        # System matrix of the open device.
        z = energy + 1j * self.eta
        a = BlockMatrix(
            z * xp.eye(h_device.shape[0], dtype=xp.complex128) - h_device.to_dense(),
            h_device.row_partition,
            copy=False,
        )
        a.blocks[0, 0] -= sigma_left
        a.blocks[-1, -1] -= sigma_right

        gamma_left = _broadening(sigma_left)
        gamma_right = _broadening(sigma_right)

        if direction is TransportDirection.LEFT_TO_RIGHT:
            x_col = self.gf_solver.compute(a, InverseMode.LAST_BLOCK_COLUMN)
            x_corner = x_col[a.row_partition.block_slice(0)]
            gamma_in, gamma_out = gamma_left, gamma_right
        else:
            x_col = self.gf_solver.compute(a, InverseMode.FIRST_BLOCK_COLUMN)
            x_corner = x_col[a.row_partition.block_slice(-1)]
            gamma_in, gamma_out = gamma_right, gamma_left

        transmission = xp.trace(gamma_in @ x_corner @ gamma_out @ x_corner.conj().T)
        return float(transmission.real), tuple(leads)

    def _prepare(
        self,
        h_device: BlockMatrixBase | ArrayLike,
        v_left: ArrayLike,
        v_right: ArrayLike,
        block_sizes: ArrayLike | BlockPartition | None,
    ) -> tuple[BlockMatrixBase, NDArray, NDArray]:
        h_device = as_block_matrix(h_device, block_sizes)
        if not h_device.is_square():
            raise DimensionMismatch(
                f"The device Hamiltonian must have square diagonal blocks, "
                f"got {h_device!r}."
            )
        v_left = xp.asarray(v_left)
        v_right = xp.asarray(v_right)
        self._check_couplings(h_device, v_left, v_right)
        return h_device, v_left, v_right

    @profiler.profile(level="api")
    def transmission(
        self,
        h_device: BlockMatrixBase | ArrayLike,
        v_left: ArrayLike,
        v_right: ArrayLike,
        energy: float,
        direction: TransportDirection | str = TransportDirection.LEFT_TO_RIGHT,
        block_sizes: ArrayLike | BlockPartition | None = None,
    ) -> float:
        """Computes the transmission at a single energy.

        Parameters
        ----------
        h_device : BlockMatrixBase | ArrayLike
            The block-tridiagonal device Hamiltonian.
        v_left : ArrayLike
            Coupling `H_{0,L}` from the first device block to the left
            lead surface, of shape `(s_0, n_L)`.
        v_right : ArrayLike
            Coupling `H_{R,k-1}` from the right lead surface to the last
            device block, of shape `(n_R, s_{k-1})`.
        energy : float
            The energy.
        direction : TransportDirection | str, optional
            The direction of transmission, by default left to right.
        block_sizes : ArrayLike | BlockPartition, optional
            The block sizes of the device Hamiltonian if it is given as
            a dense array.

        Returns
        -------
        float
            The transmission.

        Raises
        ------
        DimensionMismatch
            If the couplings do not match the device partition or the
            lead blocks.
        SingularBlock
            If a block inversion fails.

        """
        h_device, v_left, v_right = self._prepare(
            h_device, v_left, v_right, block_sizes
        )
        transmission, leads = self._transmission(
            h_device, v_left, v_right, energy, TransportDirection(direction)
        )
        for lead in leads:
            if lead.converged:
                continue
            warnings.warn(
                NotConvergedWarning(
                    f"Lead surface Green's function did not converge at {energy=} "
                    f"(residual = {lead.residual:.3e}).",
                    lead.num_iterations,
                    lead.delta,
                ),
                stacklevel=2,
            )
        return transmission

    def transmission_spectrum(
        self,
        h_device: BlockMatrixBase | ArrayLike,
        v_left: ArrayLike,
        v_right: ArrayLike,
        energies: Sequence[float] | ArrayLike,
        direction: TransportDirection | str = TransportDirection.LEFT_TO_RIGHT,
        block_sizes: ArrayLike | BlockPartition | None = None,
        num_workers: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> list[UnitResult]:
        """Computes the transmission on an energy grid.

        The energies are independent units that are solved concurrently.
        Lead non-convergence is reported per energy through the
        `converged` flag of the result instead of a warning.

        Parameters
        ----------
        h_device : BlockMatrixBase | ArrayLike
            The block-tridiagonal device Hamiltonian.
        v_left : ArrayLike
            Coupling `H_{0,L}` from the first device block to the left
            lead surface.
        v_right : ArrayLike
            Coupling `H_{R,k-1}` from the right lead surface to the last
            device block.
        energies : Sequence[float] | ArrayLike
            The energy grid.
        direction : TransportDirection | str, optional
            The direction of transmission, by default left to right.
        block_sizes : ArrayLike | BlockPartition, optional
            The block sizes of the device Hamiltonian if it is given as
            a dense array.
        num_workers : int, optional
            The number of worker threads.
        progress_callback : Callable[[float], None], optional
            Receives the completed fraction of energies.

        Returns
        -------
        list[UnitResult]
            One result per energy, holding the transmission.

        """
        h_device, v_left, v_right = self._prepare(
            h_device, v_left, v_right, block_sizes
        )
        direction = TransportDirection(direction)
        energies = [float(energy) for energy in xp.atleast_1d(energies)]

        def _unit(energy: float) -> tuple[float, bool]:
            transmission, leads = self._transmission(
                h_device, v_left, v_right, energy, direction
            )
            return transmission, all(lead.converged for lead in leads)

        logger.debug("Transmission spectrum on %d energies.", len(energies))
        return solve_ensemble(
            energies,
            _unit,
            num_workers=num_workers,
            progress_callback=progress_callback,
        )
