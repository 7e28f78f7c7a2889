# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.greens_function_solver.inv import Inv
from blockgreens.greens_function_solver.rgf import RGF
from blockgreens.greens_function_solver.solver import (
    GFSolver,
    InverseMode,
    as_block_matrix,
)

__all__ = ["GFSolver", "InverseMode", "Inv", "RGF", "as_block_matrix"]
