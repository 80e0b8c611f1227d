"""
Tests for the packaged manifest and manifest accessors.
"""

import pytest

from workstation_setup.errors import ConfigError
from workstation_setup.lib.manifests import DEFAULT_MANIFEST, load_manifest, section, string_list


def test_default_manifest_loads():
    m = load_manifest()
    assert DEFAULT_MANIFEST.is_file()
    for key in ("purge", "core", "gnome_tools", "services_to_disable"):
        assert string_list(m, key), key
    assert "zsh" in string_list(m, "core")
    assert section(m, "flatpak")["remote"] == "flathub"
    assert "{arch}" in section(m, "terminal")["deb_url"]
    plugins = section(m, "zsh")["plugins"]
    assert all({"name", "url"} <= set(p) for p in plugins)


def test_custom_manifest(tmp_path):
    p = tmp_path / "m.yaml"
    p.write_text("core: [zsh, ' git ', '']\n")
    assert string_list(load_manifest(str(p)), "core") == ["zsh", "git"]


@pytest.mark.parametrize("text", ["- a\n- b\n", "core: [\n"])
def test_bad_manifest(tmp_path, text):
    p = tmp_path / "m.yaml"
    p.write_text(text)
    with pytest.raises(ConfigError):
        load_manifest(str(p))


def test_missing_manifest(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_manifest(str(tmp_path / "nope.yaml"))


def test_wrong_shapes():
    with pytest.raises(ConfigError):
        section({"flatpak": ["x"]}, "flatpak")
    with pytest.raises(ConfigError):
        string_list({"core": "zsh"}, "core")
