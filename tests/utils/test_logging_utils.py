# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import io
import logging

from blockgreens import xp
from blockgreens.obc import SanchoRubio
from blockgreens.utils import disable_logging, enable_logging
from blockgreens.utils.logging_utils import logging_enabled


def test_silent_by_default():
    """Tests that nothing is written without a sink."""
    assert not logging_enabled()
    assert any(
        isinstance(handler, logging.NullHandler)
        for handler in logging.getLogger("blockgreens").handlers
    )


def test_enable_logging():
    """Tests that diagnostics reach an attached sink."""
    stream = io.StringIO()
    enable_logging(stream)
    assert logging_enabled()

    SanchoRubio()(3.0 * xp.eye(2), -xp.eye(2))
    assert "blockgreens.obc.sancho_rubio DEBUG" in stream.getvalue()
    assert "converged after" in stream.getvalue()

    disable_logging()
    assert not logging_enabled()
    written = stream.getvalue()
    SanchoRubio()(3.0 * xp.eye(2), -xp.eye(2))
    assert stream.getvalue() == written


def test_logging_level():
    """Tests that records below the sink level are dropped."""
    stream = io.StringIO()
    enable_logging(stream, level=logging.WARNING)

    SanchoRubio()(3.0 * xp.eye(2), -xp.eye(2))
    assert stream.getvalue() == ""

    SanchoRubio(max_iterations=0).solve(3.0 * xp.eye(2), -xp.eye(2))
    assert "did not converge" in stream.getvalue()


def test_replace_sink():
    """Tests that enabling again replaces the previous sink."""
    first, second = io.StringIO(), io.StringIO()
    enable_logging(first)
    enable_logging(second)

    SanchoRubio()(3.0 * xp.eye(2), -xp.eye(2))
    assert first.getvalue() == ""
    assert second.getvalue() != ""
