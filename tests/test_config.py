import json
import os

import pytest

from aurhelper.settings import config as config_module
from aurhelper.settings.config import (
    Configuration,
    default_config,
    expand_env_or_home,
    new_config,
)
from aurhelper.settings.dirs import PrivilegeElevatorNotFoundError, get_config_path
from aurhelper.settings.exe import MockRunner
from aurhelper.settings.parser import Arguments, RebuildMode, TargetMode


def _make_executable(directory, name):
    path = directory / name
    path.write_text("")
    os.chmod(path, 0o755)
    return str(path)


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", str(directory))
    monkeypatch.delenv("PACMAN_AUTH", raising=False)
    return directory


@pytest.fixture
def config_home(tmp_path, monkeypatch, bin_dir):
    home = tmp_path / "config"
    (home / "yay").mkdir(parents=True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdgcache"))
    monkeypatch.delenv("AURDEST", raising=False)
    _make_executable(bin_dir, "sudo")
    return home


def _write_config(config_home, data):
    (config_home / "yay" / "config.json").write_text(json.dumps(data))


def test_new_config_creates_build_dir(config_home, tmp_path):
    build_dir = tmp_path / "cache" / "test-build-dir"
    _write_config(config_home, {"BuildDir": str(build_dir)})

    config = new_config(get_config_path(), "v1.0.0")

    assert config.build_dir == str(build_dir)
    assert build_dir.is_dir()


def test_new_config_aurdest(config_home, tmp_path, monkeypatch):
    _write_config(config_home, {"BuildDir": str(tmp_path / "cache" / "test-other-dir")})
    target = tmp_path / "cache" / "test-build-dir"
    monkeypatch.setenv("AURDEST", str(target))

    config = new_config(get_config_path(), "v1.0.0")

    assert config.build_dir == str(target)
    assert target.is_dir()


def test_new_config_aurdest_tilde_expansion(config_home, tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    _write_config(config_home, {"BuildDir": str(tmp_path / "cache" / "test-other-dir")})
    monkeypatch.setenv("AURDEST", "~/test-build-dir")
    monkeypatch.setenv("HOME", str(home))

    config = new_config(get_config_path(), "v1.0.0")

    assert config.build_dir == str(home / "test-build-dir")
    assert (home / "test-build-dir").is_dir()


def test_privilege_elevator_keeps_sudo(bin_dir):
    _make_executable(bin_dir, "sudo")
    config = default_config("test")
    config.sudo_loop = True
    config.sudo_flags = "-v"

    config.set_privilege_elevator()

    assert config.sudo_bin == "sudo"
    assert config.sudo_flags == "-v"
    assert config.sudo_loop is True


def test_privilege_elevator_su(bin_dir):
    _make_executable(bin_dir, "su")
    config = default_config("test")
    config.sudo_loop = True
    config.sudo_flags = "-v"

    config.set_privilege_elevator()

    assert config.sudo_bin == "su"
    assert config.sudo_flags == ""
    assert config.sudo_loop is False


def test_privilege_elevator_no_path(monkeypatch):
    monkeypatch.setenv("PATH", "")
    monkeypatch.delenv("PACMAN_AUTH", raising=False)
    config = default_config("test")
    config.sudo_loop = True
    config.sudo_flags = "-v"

    with pytest.raises(PrivilegeElevatorNotFoundError):
        config.set_privilege_elevator()

    assert config.sudo_bin == "sudo"
    assert config.sudo_flags == ""
    assert config.sudo_loop is False


def test_privilege_elevator_doas(bin_dir):
    _make_executable(bin_dir, "doas")
    config = default_config("test")
    config.sudo_loop = True
    config.sudo_flags = "-v"

    config.set_privilege_elevator()

    assert config.sudo_bin == "doas"
    assert config.sudo_flags == ""
    assert config.sudo_loop is False


def test_privilege_elevator_custom_script(bin_dir):
    wrapper = _make_executable(bin_dir, "custom-wrapper")
    config = default_config("test")
    config.sudo_loop = True
    config.sudo_bin = wrapper
    config.sudo_flags = "-v"

    config.set_privilege_elevator()

    assert config.sudo_bin == wrapper
    assert config.sudo_flags == "-v"
    assert config.sudo_loop is True


def test_privilege_elevator_pacman_auth_doas(bin_dir, monkeypatch):
    _make_executable(bin_dir, "doas")
    _make_executable(bin_dir, "sudo")
    config = default_config("test")
    config.sudo_bin = "sudo"
    config.sudo_loop = True
    config.sudo_flags = "-v"
    monkeypatch.setenv("PACMAN_AUTH", "doas")

    config.set_privilege_elevator()

    assert config.sudo_bin == "doas"
    assert config.sudo_flags == ""
    assert config.sudo_loop is False


def test_privilege_elevator_pacman_auth_sudo(bin_dir, monkeypatch):
    _make_executable(bin_dir, "doas")
    _make_executable(bin_dir, "sudo")
    config = default_config("test")
    config.sudo_bin = "doas"
    config.sudo_loop = True
    config.sudo_flags = "-v"
    monkeypatch.setenv("PACMAN_AUTH", "sudo")

    config.set_privilege_elevator()

    assert config.sudo_bin == "sudo"
    assert config.sudo_flags == "-v"
    assert config.sudo_loop is True


def test_default_config_values():
    config = default_config("1.2.3")
    assert config.aur_url == "https://aur.archlinux.org"
    assert config.sort_by == "votes"
    assert config.search_by == "name-desc"
    assert config.request_split_n == 150
    assert config.rebuild == RebuildMode.NO
    assert config.remove_make == "ask"
    assert config.mode == TargetMode.ANY
    assert config.version == "1.2.3"


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = default_config("old")
    config.sort_by = "name"
    config.rebuild = RebuildMode.TREE
    config.save(str(path), "2.0.0")

    content = path.read_text()
    assert content.endswith("}\n")
    data = json.loads(content)
    assert data["version"] == "2.0.0"
    assert data["rebuild"] == "tree"
    assert data["buildDir"] == config.build_dir
    assert "mode" not in data

    loaded = Configuration()
    loaded.load(str(path))
    assert loaded.sort_by == "name"
    assert loaded.rebuild == RebuildMode.TREE
    assert loaded.request_split_n == 150


def test_str_uses_tab_indent_and_html_escapes():
    config = Configuration(editor="a<b>&c")
    text = str(config)
    assert '\t"aururl": ""' in text
    assert "a\\u003cb\\u003e\\u0026c" in text
    assert json.loads(text)["editor"] == "a<b>&c"


def test_load_skips_wrong_types_but_keeps_others(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"sortby": "name", "requestsplitn": "many", "devel": True}))
    config = Configuration()
    config.load(str(path))
    assert config.sort_by == "name"
    assert config.devel is True
    assert config.request_split_n == 0
    assert "failed to read config file" in capsys.readouterr().err


def test_load_missing_file_keeps_values(tmp_path):
    config = default_config("x")
    config.load(str(tmp_path / "absent.json"))
    assert config.sort_by == "votes"


def test_expand_env_or_home(monkeypatch):
    monkeypatch.setenv("HOME", "/home/someone")
    monkeypatch.setenv("AURHELPER_DIR", "builds")
    assert expand_env_or_home("~/$AURHELPER_DIR") == "/home/someone/builds"
    assert expand_env_or_home("/abs/${AURHELPER_DIR}") == "/abs/builds"


def test_expand_env_unset_variables_become_empty(monkeypatch):
    monkeypatch.delenv("AURHELPER_UNSET_VAR", raising=False)
    config = Configuration(mflags="$AURHELPER_UNSET_VAR -s", gpg_flags="x${}y", sort_by="cost$")
    config.expand_env()
    assert config.mflags == " -s"
    assert config.gpg_flags == "xy"
    assert config.sort_by == "cost$"


def test_handle_option_values():
    config = default_config("x")
    assert config.handle_option("sortby", "name") is True
    assert config.sort_by == "name"
    assert config.handle_option("rebuildtree", "") is True
    assert config.rebuild == RebuildMode.TREE
    assert config.handle_option("repo", "") is True
    assert config.mode == TargetMode.REPO
    assert config.handle_option("noanswerclean", "") is True
    assert config.answer_clean == ""
    assert config.handle_option("needed", "") is False


def test_handle_option_numeric():
    config = default_config("x")
    config.handle_option("requestsplitn", "0")
    assert config.request_split_n == 150
    config.handle_option("requestsplitn", "20")
    assert config.request_split_n == 20
    config.handle_option("completioninterval", "abc")
    assert config.completion_interval == 7
    config.handle_option("completioninterval", "-3")
    assert config.completion_interval == -3


def test_handle_option_noconfirm(monkeypatch):
    monkeypatch.setattr(config_module, "NO_CONFIRM", False)
    config = default_config("x")
    assert config.handle_option("noconfirm", "") is True
    assert config_module.NO_CONFIRM is True


def test_parse_command_line_strips_helper_options():
    config = default_config("x")
    args = Arguments()
    config.parse_command_line(
        args, ["-S", "--aururl", "https://aur.example.com/", "--needed", "foo"]
    )
    assert config.aur_url == "https://aur.example.com"
    assert config.aur_rpc_url == "https://aur.example.com/rpc?"
    assert "aururl" not in args.options
    assert "needed" in args.options
    assert args.targets == ["foo"]
    assert config.command_builder.pacman_bin == "pacman"


@pytest.mark.parametrize(
    "rpc_url, expected",
    [
        ("https://aur.example.com/rpc", "https://aur.example.com/rpc?"),
        ("https://aur.example.com/api/", "https://aur.example.com/api/rpc?"),
        ("https://aur.example.com/custom?", "https://aur.example.com/custom?"),
    ],
)
def test_parse_command_line_rpc_url(rpc_url, expected):
    config = default_config("x")
    config.parse_command_line(Arguments(), ["-Ss", "--aurrpcurl", rpc_url, "foo"])
    assert config.aur_rpc_url == expected


def test_cmd_builder_uses_settings():
    config = default_config("x")
    config.git_flags = "--quiet  --no-pager"
    config.makepkg_conf = "/etc/makepkg.conf"
    runner = MockRunner()
    builder = config.cmd_builder(runner)
    assert builder.git_flags == ["--quiet", "--no-pager"]
    assert builder.makepkg_conf_path == "/etc/makepkg.conf"
    assert builder.runner is runner