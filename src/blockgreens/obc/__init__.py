# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.obc.obc import OBCSolver, Orientation, lead_self_energy
from blockgreens.obc.sancho_rubio import DecimationResult, SanchoRubio

__all__ = [
    "OBCSolver",
    "Orientation",
    "SanchoRubio",
    "DecimationResult",
    "lead_self_energy",
]
