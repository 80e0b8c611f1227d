"""
Tests for the per-run working directory: removed on every way out of the block.
"""

import logging
import os
import signal
import time

import pytest

from workstation_setup.errors import RunInterrupted
from workstation_setup.lib import workdir
from workstation_setup.lib.signals import interrupt_signals
from workstation_setup.lib.workdir import WorkingDirectory


def test_created_under_parent_with_prefix(tmp_path):
    wd = WorkingDirectory(tmp_path, prefix="setup_temp.")
    with wd as path:
        assert path.is_dir()
        assert path.parent == tmp_path
        assert path.name.startswith("setup_temp.")
    assert not path.exists()
    assert wd.released


def test_removed_on_exception(tmp_path):
    with pytest.raises(RuntimeError):
        with WorkingDirectory(tmp_path) as path:
            (path / "partial.tar.gz").write_bytes(b"\x00" * 16)
            raise RuntimeError("step blew up")
    assert not path.exists()


def test_removed_on_interrupt(tmp_path):
    with pytest.raises(RunInterrupted):
        with WorkingDirectory(tmp_path) as path:
            (path / "sub").mkdir()
            raise RunInterrupted(signal.SIGTERM)
    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


def test_release_is_idempotent(tmp_path, caplog):
    wd = WorkingDirectory(tmp_path)
    path = wd.acquire()
    with caplog.at_level(logging.INFO, logger="workstation_setup.lib.workdir"):
        wd.release()
        wd.release()
    assert not path.exists()
    assert sum("Removed working directory" in r.getMessage() for r in caplog.records) == 1


def test_already_deleted_is_only_a_warning(tmp_path, caplog):
    wd = WorkingDirectory(tmp_path)
    path = wd.acquire()
    path.rmdir()
    with caplog.at_level(logging.WARNING):
        wd.release()
    assert any("already gone" in r.getMessage() for r in caplog.records)


def test_removal_failure_logged_not_raised(tmp_path, monkeypatch, caplog):
    def boom(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(workdir.shutil, "rmtree", boom)
    with caplog.at_level(logging.ERROR):
        with WorkingDirectory(tmp_path):
            pass
    assert any("Failed to remove working directory" in r.getMessage() for r in caplog.records)


def test_release_before_acquire_is_noop(tmp_path):
    wd = WorkingDirectory(tmp_path)
    wd.release()
    with pytest.raises(RuntimeError):
        wd.path


def test_acquire_twice_rejected(tmp_path):
    wd = WorkingDirectory(tmp_path)
    with wd:
        with pytest.raises(RuntimeError):
            wd.acquire()


class TestSignalsDuringCleanup:
    def test_signal_during_removal_waits_for_it(self, tmp_path, monkeypatch):
        real_rmtree = workdir.shutil.rmtree

        def rmtree_then_signalled(path):
            os.kill(os.getpid(), signal.SIGTERM)
            real_rmtree(path)

        wd = WorkingDirectory(tmp_path)
        path = wd.acquire()
        monkeypatch.setattr(workdir.shutil, "rmtree", rmtree_then_signalled)

        with pytest.raises(RunInterrupted):
            with interrupt_signals():
                wd.release()
                time.sleep(0.5)

        assert not path.exists()
        assert wd.released

    def test_interrupt_while_unregistering_leaves_nothing_behind(self, tmp_path, monkeypatch):
        def interrupted(func):
            raise RunInterrupted(signal.SIGTERM)

        wd = WorkingDirectory(tmp_path)
        path = wd.acquire()
        monkeypatch.setattr(workdir.atexit, "unregister", interrupted)

        with pytest.raises(RunInterrupted):
            wd.release()
        wd.release()

        assert not path.exists()
        assert wd.released

    def test_signal_during_creation_removes_directory(self, tmp_path, monkeypatch):
        real_register = workdir.atexit.register

        def register_then_signalled(func):
            os.kill(os.getpid(), signal.SIGTERM)
            return real_register(func)

        monkeypatch.setattr(workdir.atexit, "register", register_then_signalled)
        wd = WorkingDirectory(tmp_path)

        with pytest.raises(RunInterrupted):
            with interrupt_signals():
                wd.acquire()
                time.sleep(0.5)

        assert wd.released
        assert list(tmp_path.iterdir()) == []
