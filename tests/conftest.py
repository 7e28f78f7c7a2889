# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import pytest

from blockgreens import xp
from blockgreens.utils import disable_logging


@pytest.fixture(autouse=True)
def seed_random():
    """Makes the random test matrices reproducible."""
    xp.random.seed(0)


@pytest.fixture(autouse=True)
def reset_logging():
    """Detaches diagnostics sinks a test may have attached."""
    yield
    disable_logging()
