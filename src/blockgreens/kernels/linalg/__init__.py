# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.kernels.linalg.inv import inv, rcond

__all__ = ["inv", "rcond"]
