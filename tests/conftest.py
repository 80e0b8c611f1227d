from __future__ import annotations

import logging
from pathlib import Path

import pytest

from workstation_setup.lib.detect import Variant
from workstation_setup.lib.preconditions import Principal
from workstation_setup.pipeline import RunContext


@pytest.fixture
def principal(tmp_path: Path) -> Principal:
    home = tmp_path / "home" / "alice"
    home.mkdir(parents=True)
    return Principal(username="alice", home=home, uid=1000, gid=1000, shell="/bin/bash")


@pytest.fixture
def make_ctx(principal: Principal, tmp_path: Path):
    def _make(variant: Variant = Variant.GNOME, **kwargs) -> RunContext:
        work_dir = tmp_path / "work"
        work_dir.mkdir(exist_ok=True)
        return RunContext(principal=principal, variant=variant, work_dir=work_dir, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def reset_root_logging():
    """configure_logging() installs handlers on the root logger once per process."""

    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    for attr in ("_workstation_setup_configured", "_workstation_setup_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
