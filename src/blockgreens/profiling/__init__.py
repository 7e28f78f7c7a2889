# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.profiling.profiler import Profiler

__all__ = ["Profiler"]
