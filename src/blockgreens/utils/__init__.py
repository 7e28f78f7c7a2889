# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.utils.logging_utils import disable_logging, enable_logging

__all__ = ["enable_logging", "disable_logging"]
