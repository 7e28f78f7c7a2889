# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from abc import ABC, abstractmethod
from enum import Enum

from blockgreens import NDArray


class Orientation(Enum):
    """Side on which a semi-infinite chain extends from its surface.

    `FROM_LEFT` chains extend to the left of their surface cell, i.e.
    they are the left lead of a device. `FROM_RIGHT` chains extend to
    the right.

    """

    FROM_LEFT = "from_left"
    FROM_RIGHT = "from_right"


class OBCSolver(ABC):
    r"""Abstract base class for the open-boundary condition solver.

    For a chain that extends to the left, the recursion relation for the
    surface Green's function is given by:

    \[
        x_{ii} = (a_{ii} - a_{ji} x_{ii} a_{ij})^{-1}
    \]

    For a chain that extends to the right, the roles of the coupling
    blocks are swapped:

    \[
        x_{ii} = (a_{ii} - a_{ij} x_{ii} a_{ji})^{-1}
    \]

    """

    @abstractmethod
    def __call__(
        self,
        a_ii: NDArray,
        a_ij: NDArray,
        a_ji: NDArray | None = None,
        orientation: Orientation | str = Orientation.FROM_LEFT,
        out: None | NDArray = None,
    ) -> NDArray | None:
        """Returns the surface Green's function.

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
        out : NDArray, optional
            The array to store the result in. If not provided, a new
            array is returned.

        Returns
        -------
        x_ii : NDArray
            The system's surface Green's function.

        """
        ...


def lead_self_energy(
    coupling: NDArray,
    x_ii: NDArray,
    orientation: Orientation | str = Orientation.FROM_LEFT,
) -> NDArray:
    """Folds a surface Green's function into a boundary self-energy.

    Parameters
    ----------
    coupling : NDArray
        Hamiltonian coupling between the device and the lead surface.
        For a left lead, this is the block `H_{0,L}` from the first
        device block to the lead. For a right lead, this is the block
        `H_{R,k-1}` from the lead to the last device block.
    x_ii : NDArray
        The surface Green's function of the lead.
    orientation : Orientation | str, optional
        The side on which the lead extends, by default `FROM_LEFT`.

    Returns
    -------
    NDArray
        The self-energy acting on the adjacent device block.

    """
    if Orientation(orientation) is Orientation.FROM_LEFT:
        return coupling @ x_ii @ coupling.conj().T
    return coupling.conj().T @ x_ii @ coupling
