# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
import os
from typing import Any, TypeAlias, TypeVar
from warnings import warn

import numpy as xp
from numpy.typing import ArrayLike
from scipy import sparse

from blockgreens.__about__ import __version__

# The package logger stays silent unless a sink is attached.
logging.getLogger(__name__).addHandler(logging.NullHandler())


def strtobool(s: str, default: bool | None = None) -> bool:
    """Convert a string to a boolean."""
    if s.lower() in ("y", "yes", "t", "true", "on", "1"):
        return True
    if s.lower() in ("n", "no", "f", "false", "off", "0"):
        return False

    if default is None:
        raise ValueError(f"Invalid truth value {s=}.")

    warn(f"Invalid truth value {s=}. Defaulting to {default=}.")
    return default


# Some type aliases for the array module.
_ScalarType = TypeVar("ScalarType", bound=xp.generic, covariant=True)
_DType = xp.dtype[_ScalarType]
NDArray: TypeAlias = xp.ndarray[Any, _DType]


# Default number of worker threads used to solve matrix ensembles.
ENSEMBLE_NUM_WORKERS = os.environ.get("ENSEMBLE_NUM_WORKERS", None)
if ENSEMBLE_NUM_WORKERS is not None:
    try:
        ENSEMBLE_NUM_WORKERS = int(ENSEMBLE_NUM_WORKERS)
        if ENSEMBLE_NUM_WORKERS < 1:
            raise ValueError
    except ValueError:
        warn(
            f"Invalid ENSEMBLE_NUM_WORKERS '{ENSEMBLE_NUM_WORKERS}', "
            "defaulting to the number of CPUs."
        )
        ENSEMBLE_NUM_WORKERS = None

if ENSEMBLE_NUM_WORKERS is None:
    ENSEMBLE_NUM_WORKERS = os.cpu_count() or 1


# Reciprocal condition number under which a block counts as singular.
SINGULAR_RCOND = os.environ.get("SINGULAR_RCOND", None)
if SINGULAR_RCOND is not None:
    try:
        SINGULAR_RCOND = float(SINGULAR_RCOND)
    except ValueError:
        warn(f"Invalid SINGULAR_RCOND '{SINGULAR_RCOND}', defaulting to eps.")
        SINGULAR_RCOND = None

if SINGULAR_RCOND is None:
    SINGULAR_RCOND = float(xp.finfo(xp.float64).eps)


# Allows the user to switch the diagnostics sink on at import time.
BLOCKGREENS_LOG = strtobool(os.environ.get("BLOCKGREENS_LOG", "false"), False)
if BLOCKGREENS_LOG:
    from blockgreens.utils.logging_utils import enable_logging

    enable_logging()


__all__ = [
    "__version__",
    "xp",
    "sparse",
    "NDArray",
    "ArrayLike",
    "strtobool",
    "ENSEMBLE_NUM_WORKERS",
    "SINGULAR_RCOND",
]
