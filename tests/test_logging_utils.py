"""
Tests for run log setup.
"""

import logging

from workstation_setup.logging_utils import FALLBACK_LOG_NAME, configure_logging


def test_writes_requested_file(tmp_path):
    path = tmp_path / "var" / "log" / "setup.log"
    assert configure_logging(str(path), also_console=False) == str(path)
    logging.getLogger("workstation_setup.test").debug("debug detail")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "debug detail" in path.read_text()


def test_falls_back_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    chosen = configure_logging(str(blocker / "setup.log"), also_console=False)
    assert chosen == str(tmp_path / FALLBACK_LOG_NAME)


def test_second_call_keeps_handlers(tmp_path):
    first = configure_logging(str(tmp_path / "a.log"))
    count = len(logging.getLogger().handlers)
    second = configure_logging(str(tmp_path / "b.log"), level=logging.DEBUG)
    assert first == second
    assert len(logging.getLogger().handlers) == count
    assert not (tmp_path / "b.log").exists()
