from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_gohtmlx_logger():
    # `cli.main` installs its own stderr handler; keep caplog working across tests.
    pkg_logger = logging.getLogger("gohtmlx")
    handlers, level, propagate = list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate
    yield
    pkg_logger.handlers = handlers
    pkg_logger.setLevel(level)
    pkg_logger.propagate = propagate
