"""
Tests for the concrete provisioning steps and step selection.

Commands are never executed: the helpers each step imports are monkeypatched.
"""

import io
import os
import tarfile

import pytest

from workstation_setup.errors import ConfigError
from workstation_setup.lib.command import CmdResult
from workstation_setup.lib.detect import Variant
from workstation_setup.main import all_steps, build_steps
from workstation_setup.settings import Settings
from workstation_setup.steps import step_15_purge_default_apps as purge_mod
from workstation_setup.steps import step_30_shell as shell_mod
from workstation_setup.steps import step_90_finalize as finalize_mod
from workstation_setup.steps.step_25_cli_tools import extract_binary


class TestStepTable:
    def test_ids_unique_and_ordered(self):
        ids = [s.step_id for s in all_steps()]
        assert len(ids) == len(set(ids))
        assert ids == sorted(ids)

    def test_gnome_only_steps(self):
        gnome_only = {s.step_id for s in all_steps() if not s.guard(Variant.KDE)}
        assert gnome_only == {
            "15_purge_default_apps",
            "21_install_desktop_tools",
            "60_install_shell_extension_packages",
            "61_install_pop_shell",
            "62_install_blur_my_shell",
        }
        assert all(s.guard(Variant.GNOME) for s in all_steps())

    def test_critical_steps(self):
        critical = {s.step_id for s in all_steps() if s.critical}
        assert "10_refresh_package_index" in critical
        assert "20_install_core_packages" in critical
        assert "51_install_flatpak_apps" not in critical


class TestBuildSteps:
    def test_defaults_leave_out_opt_in_steps(self):
        ids = [s.step_id for s in build_steps(Settings())]
        assert "05_configure_apt_sources" not in ids
        assert ids[0] == "10_refresh_package_index"

    def test_enable_and_disable(self):
        settings = Settings({"steps": {"enable": ["05_configure_apt_sources"], "disable": ["70_install_fabric"]}})
        ids = [s.step_id for s in build_steps(settings)]
        assert ids[0] == "05_configure_apt_sources"
        assert "70_install_fabric" not in ids
        assert "71_install_fabric_completions" in ids

    def test_unknown_id(self):
        with pytest.raises(ConfigError, match="99_nope"):
            build_steps(Settings({"steps": {"disable": ["99_nope"]}}))


def _tarball(path, members):
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


class TestExtractBinary:
    def test_extracts_nested_member_executable(self, tmp_path):
        archive = _tarball(tmp_path / "eza.tar.gz", {"./eza": b"#!/bin/sh\necho eza\n", "./README": b"docs"})
        dest = extract_binary(archive, "eza", tmp_path / "bin")
        assert dest == tmp_path / "bin" / "eza"
        assert dest.read_bytes().startswith(b"#!/bin/sh")
        assert os.access(dest, os.X_OK)
        assert sorted(p.name for p in (tmp_path / "bin").iterdir()) == ["eza"]

    def test_overwrites_existing(self, tmp_path):
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "eza").write_text("old")
        archive = _tarball(tmp_path / "eza.tar.gz", {"eza": b"new"})
        assert extract_binary(archive, "eza", tmp_path / "bin").read_bytes() == b"new"

    def test_missing_member(self, tmp_path):
        archive = _tarball(tmp_path / "eza.tar.gz", {"other": b"x"})
        with pytest.raises(RuntimeError, match="not found"):
            extract_binary(archive, "eza", tmp_path / "bin")


class TestPurgeDefaultApps:
    def test_purges_only_installed(self, monkeypatch, make_ctx):
        purged = []
        monkeypatch.setattr(purge_mod, "installed_subset", lambda pkgs: [p for p in pkgs if p != "cheese"])
        monkeypatch.setattr(purge_mod, "apt_purge", lambda pkgs, dry_run=False: purged.extend(pkgs))

        ctx = make_ctx(manifest={"purge": ["totem", "cheese"]})
        purge_mod.PurgeDefaultAppsStep().action(ctx)

        assert purged == ["totem"]

    def test_nothing_to_purge(self, monkeypatch, make_ctx):
        monkeypatch.setattr(purge_mod, "installed_subset", lambda pkgs: [])
        monkeypatch.setattr(purge_mod, "apt_purge", lambda pkgs, dry_run=False: pytest.fail("purge called"))
        purge_mod.PurgeDefaultAppsStep().action(make_ctx(manifest={"purge": ["totem"]}))

    def test_verify_reports_leftovers(self, monkeypatch, make_ctx):
        monkeypatch.setattr(purge_mod, "installed_subset", lambda pkgs: ["totem"])
        assert purge_mod.PurgeDefaultAppsStep().verify(make_ctx(manifest={"purge": ["totem"]})) is False


class TestApplyZshrc:
    @pytest.fixture
    def fake_download(self, monkeypatch):
        def _install(body):
            def download_as_user(principal, url, dest, dry_run=False):
                dest.write_text(body)
                return dest

            monkeypatch.setattr(shell_mod, "download_as_user", download_as_user)

        return _install

    def test_appends_go_block_once(self, fake_download, make_ctx, principal):
        fake_download("# zshrc\n")
        ctx = make_ctx(manifest={"dotfiles": {"zshrc": "https://example.invalid/.zshrc"}})
        step = shell_mod.ApplyZshrcStep()

        step.action(ctx)
        text = (principal.home / ".zshrc").read_text()
        assert text.count("export GOPATH") == 1
        assert step.verify(ctx)

    def test_existing_go_block_left_alone(self, fake_download, make_ctx, principal):
        fake_download("export GOPATH=/opt/go\n")
        ctx = make_ctx(manifest={"dotfiles": {"zshrc": "https://example.invalid/.zshrc"}})
        shell_mod.ApplyZshrcStep().action(ctx)
        assert (principal.home / ".zshrc").read_text() == "export GOPATH=/opt/go\n"

    def test_verify_without_file(self, make_ctx):
        assert shell_mod.ApplyZshrcStep().verify(make_ctx()) is False


class TestInstallOhMyZsh:
    def test_skips_when_present(self, monkeypatch, make_ctx, principal):
        (principal.home / ".oh-my-zsh").mkdir()
        monkeypatch.setattr(shell_mod, "download", lambda *a, **k: pytest.fail("downloaded"))
        step = shell_mod.InstallOhMyZshStep()
        step.action(make_ctx())
        assert step.verify(make_ctx())


class TestDisableServices:
    def test_missing_units_tolerated(self, monkeypatch, make_ctx):
        calls = []

        def fake_run(argv, check=True, dry_run=False, **kwargs):
            calls.append(list(argv))
            return CmdResult(list(argv), 1 if argv[-1] == "absent.service" else 0, "", "")

        monkeypatch.setattr(finalize_mod, "run_cmd", fake_run)
        ctx = make_ctx(manifest={"services_to_disable": ["cups.service", "absent.service"]})
        finalize_mod.DisableServicesStep().action(ctx)
        assert calls == [
            ["systemctl", "disable", "cups.service"],
            ["systemctl", "disable", "absent.service"],
        ]

    def test_verify(self, monkeypatch, make_ctx):
        state = {"cups.service": "enabled\n", "absent.service": ""}
        monkeypatch.setattr(
            finalize_mod,
            "run_cmd",
            lambda argv, check=True, **kw: CmdResult(list(argv), 0, state[argv[-1]], ""),
        )
        ctx = make_ctx(manifest={"services_to_disable": list(state)})
        assert finalize_mod.DisableServicesStep().verify(ctx) is False
        state["cups.service"] = "disabled\n"
        assert finalize_mod.DisableServicesStep().verify(ctx) is True
