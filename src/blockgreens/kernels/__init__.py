# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.
