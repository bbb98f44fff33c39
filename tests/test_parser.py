import io

import pytest

from aurhelper.settings.parser import (
    ArgumentError,
    Arguments,
    Option,
    RebuildMode,
    TargetMode,
    has_param,
    is_arg,
    is_global,
    is_op,
)


@pytest.mark.parametrize(
    "initial, arg, want",
    [(["a", "b"], "c", ["a", "b", "c"]), ([], "c", ["c"])],
)
def test_option_add(initial, arg, want):
    option = Option(args=list(initial))
    option.add(arg)
    assert sorted(option.args) == sorted(want)


@pytest.mark.parametrize("initial", [["a", "b"], []])
def test_option_set(initial):
    option = Option(args=list(initial))
    option.set("c")
    assert option.args == ["c"]


@pytest.mark.parametrize("initial, want", [(["a", "b"], "a"), ([], "")])
def test_option_first(initial, want):
    assert Option(args=initial).first() == want


def test_make_arguments():
    args = Arguments()
    assert args.op == ""
    assert args.options == {}
    assert args.targets == []


def test_copy_global():
    options = {
        "a": Option(),
        "arch": Option(global_=True, args=["x86_x64"]),
        "boo": Option(global_=True, args=["a", "b"]),
    }
    cmd_args = Arguments(op="Q", options=options, targets=["a", "b"])
    got = cmd_args.copy_global()
    assert got.options != options
    assert got.targets != ["a", "b"]
    assert got.op != "Q"
    assert got == Arguments(
        op="",
        options={
            "arch": Option(global_=True, args=["x86_x64"]),
            "boo": Option(global_=True, args=["a", "b"]),
        },
        targets=[],
    )


def test_copy():
    options = {
        "a": Option(),
        "arch": Option(global_=True, args=["x86_x64"]),
        "boo": Option(global_=True, args=["a", "b"]),
    }
    cmd_args = Arguments(op="Q", options=options, targets=["a", "b"])
    got = cmd_args.copy()
    assert got == cmd_args
    assert got == Arguments(
        op="Q",
        options={
            "a": Option(),
            "arch": Option(global_=True, args=["x86_x64"]),
            "boo": Option(global_=True, args=["a", "b"]),
        },
        targets=["a", "b"],
    )
    got.targets.append("c")
    assert cmd_args.targets == ["a", "b"]


def test_del_arg():
    args = Arguments()
    args.add_param("arch", "arg")
    args.add_param("ask", "arg")
    args.del_arg("arch", "ask")
    assert args.options == {}


@pytest.mark.parametrize(
    "op, options, want",
    [
        ("S", {}, ["-S"]),
        ("Y", {"noconfirm": Option(global_=True, args=[""])}, ["-Y"]),
        (
            "Y",
            {"overwrite": Option(args=["/tmp/a"]), "useask": Option(args=[""])},
            ["-Y", "--overwrite", "/tmp/a", "--useask"],
        ),
        (
            "Y",
            {
                "overwrite": Option(args=["/tmp/a", "/tmp/b", "/tmp/c"]),
                "needed": Option(args=[""]),
            },
            ["-Y", "--overwrite", "/tmp/a", "--overwrite", "/tmp/b",
             "--overwrite", "/tmp/c", "--needed"],
        ),
    ],
)
def test_format_args(op, options, want):
    cmd_args = Arguments(op=op, options=options, targets=["yay"])
    assert sorted(cmd_args.format_args()) == sorted(want)


@pytest.mark.parametrize(
    "options, want",
    [
        (
            {"dbpath": Option(global_=True, args=["/tmp/a", "/tmp/b"])},
            ["--dbpath", "/tmp/a", "--dbpath", "/tmp/b"],
        ),
        ({"noconfirm": Option(global_=True, args=[""])}, ["--noconfirm"]),
        ({"overwrite": Option(args=["/tmp/a"]), "useask": Option(args=[""])}, []),
        (
            {
                "overwrite": Option(args=["/tmp/a", "/tmp/b", "/tmp/c"]),
                "needed": Option(args=[""]),
            },
            [],
        ),
    ],
)
def test_format_globals(options, want):
    cmd_args = Arguments(op="Y", options=options)
    assert sorted(cmd_args.format_globals()) == sorted(want)


def test_is_arg():
    assert is_arg("zorg") is False
    assert is_arg("dbpath") is True


def test_option_classification():
    assert is_op("S") is True
    assert is_op("refresh") is False
    assert is_global("noconfirm") is True
    assert is_global("needed") is False
    assert has_param("sortby") is True
    assert has_param("sync") is False


def test_parse_stdin():
    args = Arguments()
    args.parse_stdin(io.StringIO("yay"))
    assert args.targets == ["yay"]


def test_parse_stdin_multiple_lines():
    args = Arguments()
    args.parse_stdin(io.StringIO("a\r\nb\n"))
    assert args.targets == ["a", "b"]


def test_parse_stdin_broken_pipe():
    stream = io.StringIO("yay")
    stream.close()
    with pytest.raises(ArgumentError):
        Arguments().parse_stdin(stream)


class _TerminalStream(io.StringIO):
    def isatty(self):
        return True


def test_parse_stdin_terminal():
    with pytest.raises(ArgumentError):
        Arguments().parse_stdin(_TerminalStream(""))


def test_parse_combined_short_options():
    args = Arguments()
    args.parse(["-Syu"])
    assert args.op == "S"
    assert args.exists_arg("y") and args.exists_arg("u")
    assert args.targets == []


def test_parse_defaults_to_sysupgrade():
    args = Arguments()
    args.parse([])
    assert args.op == "S"
    assert sorted(args.options) == ["u", "y"]


def test_parse_targets_default_to_yay_op():
    args = Arguments()
    args.parse(["foo", "bar"])
    assert args.op == "Y"
    assert args.targets == ["foo", "bar"]


def test_parse_long_options_with_params():
    args = Arguments()
    args.parse(["-S", "--dbpath", "/x", "--ignore=a,b", "--noconfirm", "pkg"])
    assert args.op == "S"
    assert args.get_args("dbpath") == ["/x"]
    assert args.options["dbpath"].global_ is True
    assert args.get_args("ignore") == ["a", "b"]
    assert args.options["noconfirm"].global_ is True
    assert args.targets == ["pkg"]
    assert args.format_globals() == ["--dbpath", "/x", "--noconfirm"]


def test_parse_short_option_inline_param():
    args = Arguments()
    args.parse(["-Sb/some/path"])
    assert args.op == "S"
    assert args.get_arg("dbpath", "b") == ("/some/path", False, True)


def test_parse_short_option_next_param():
    args = Arguments()
    args.parse(["-Sb", "/some/path", "target"])
    assert args.get_args("b") == ["/some/path"]
    assert args.targets == ["target"]


def test_parse_double_dash_makes_targets():
    args = Arguments()
    args.parse(["-S", "--", "-Q", "--foo"])
    assert args.op == "S"
    assert args.targets == ["-Q", "--foo"]
    assert "--" not in args.format_args()


def test_parse_two_operations():
    with pytest.raises(ArgumentError, match="only one operation"):
        Arguments().parse(["-S", "-Q"])


def test_parse_invalid_option():
    with pytest.raises(ArgumentError, match="invalid option 'zorg'"):
        Arguments().parse(["--zorg"])


def test_parse_dash_reads_given_stdin():
    args = Arguments()
    args.parse(["-S", "-"], stdin=io.StringIO("a\nb\n"))
    assert args.targets == ["a", "b"]
    assert not args.exists_arg("-")


def test_get_arg_and_exists_double():
    args = Arguments()
    args.add_param("color", "always")
    args.add_param("color", "never")
    assert args.get_arg("color") == ("always", True, True)
    assert args.exists_double("color") is True
    assert args.get_arg("missing") == ("", False, False)
    assert args.exists_double("missing") is False
    assert args.get_args("missing") is None


def test_add_and_clear_targets():
    args = Arguments()
    args.add_target("a", "b")
    assert args.targets == ["a", "b"]
    args.clear_targets()
    assert args.targets == []


@pytest.mark.parametrize(
    "argv, mode, want",
    [
        (["-Syu"], TargetMode.ANY, True),
        (["-Ss", "foo"], TargetMode.ANY, False),
        (["-Si", "foo"], TargetMode.ANY, False),
        (["-Sc"], TargetMode.AUR, False),
        (["-Sc"], TargetMode.ANY, True),
        (["-Q"], TargetMode.ANY, False),
        (["-Qk"], TargetMode.ANY, True),
        (["-R", "foo"], TargetMode.ANY, True),
        (["-Rp", "foo"], TargetMode.ANY, False),
        (["-Dk"], TargetMode.ANY, False),
        (["-D"], TargetMode.ANY, True),
        (["-Fy"], TargetMode.ANY, True),
        (["-F"], TargetMode.ANY, False),
        (["-U", "x.pkg"], TargetMode.ANY, True),
        (["-Sh"], TargetMode.ANY, False),
        (["-G", "foo"], TargetMode.ANY, False),
    ],
)
def test_need_root(argv, mode, want):
    args = Arguments()
    args.parse(argv)
    assert args.need_root(mode) is want


def test_target_mode():
    assert TargetMode.ANY.at_least_aur() and TargetMode.ANY.at_least_repo()
    assert TargetMode.AUR.at_least_aur() and not TargetMode.AUR.at_least_repo()
    assert TargetMode.REPO.at_least_repo() and not TargetMode.REPO.at_least_aur()


def test_rebuild_mode_values():
    assert RebuildMode("tree") is RebuildMode.TREE
    assert [mode.value for mode in RebuildMode] == ["no", "yes", "tree", "all"]