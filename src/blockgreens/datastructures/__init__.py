# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.datastructures.block_matrix import (
    BlockMatrix,
    BlockMatrixBase,
    BlockMatrixView,
)
from blockgreens.datastructures.partition import BlockPartition

__all__ = ["BlockPartition", "BlockMatrixBase", "BlockMatrix", "BlockMatrixView"]
