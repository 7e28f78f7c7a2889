# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

__version__ = "0.1.0"
