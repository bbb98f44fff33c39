# aurhelper

Building blocks for a pacman wrapper and Arch User Repository (AUR) helper.
The package parses pacman-style command lines and loads, saves and migrates
the helper's JSON configuration. It ranks search results from the AUR and the
sync databases and orders build targets by their dependencies. It also builds
the `git`, `gpg`, `makepkg` and `pacman` commands that a helper runs.

It needs only the standard library. Install the `test` extra to run the tests
with pytest.

## What is inside

| Module | Purpose |
| --- | --- |
| `aurhelper.text.color` | ANSI colouring (`red`, `green`, `yellow`, `blue`, `magenta`, `cyan`, `bold`, `color_hash`), a process-wide switch (`set_use_color`, `use_color`), human-readable byte sizes (`human`) and date formatting (`format_time`, `format_time_query`). |
| `aurhelper.text.logger` | `Logger`, which writes info, warning, error and debug output and reads prompt input (`get_input`, which may raise `InputOverflowError`). Module-level helpers (`info`, `warnln`, `errorln`, ...) write through a global logger. `print_info_value` prints `key: values` columns. |
| `aurhelper.text.text` | `split_db_from_name`, the case-aware ordering `less_runes` and the yes/no prompt `continue_task`. |
| `aurhelper.stringset` | Small set helpers: `make`, `from_iterable`, `equal` and `MapStringSet`. |
| `aurhelper.settings.parser` | `Arguments` and `Option`, a parser for pacman-style options that raises `ArgumentError`. It also provides `TargetMode`, `RebuildMode` and the predicates `is_arg`, `is_op`, `is_global` and `has_param`. |
| `aurhelper.settings.exe` | `Command` and `CmdBuilder`. `CmdBuilder` builds commands, elevating them through sudo, doas, pkexec or su when root is needed, and dropping privileges (or wrapping in `systemd-run`) when running as root. `OSRunner` runs commands with `subprocess`. `MockRunner` records them for tests. |
| `aurhelper.settings.dirs` | `get_config_path`, `get_cache_home` and `init_dir`, together with the settings errors. |
| `aurhelper.settings.config` | `Configuration`, with its defaults (`default_config`), loading, saving, environment expansion, privilege-elevator selection and command-line overrides (`parse_command_line`, `handle_option`). `new_config` builds the effective configuration. |
| `aurhelper.settings.migrations` | `ConfigMigration`, `ProviderMigration`, `default_migrations` and `run_migrations`. `run_migrations` saves the configuration when a migration changed it. |
| `aurhelper.topo` | `Graph`, a dependency graph with a layered topological sort (`topo_sorted_layer_map`), transitive queries and pruning. |
| `aurhelper.query.version_diff` | `get_version_diff`, which highlights where two version strings diverge. `vercmp` compares package versions. `is_devel_name` and `is_devel_package` detect development packages. |
| `aurhelper.query.filter` | `remove_invalid_targets`, which drops targets that the chosen `TargetMode` cannot serve. The module also defines `AURSearchError` and `NoQueryError`. |
| `aurhelper.query.builder` | `SourceQueryBuilder`, which searches the AUR and the repositories, ranks and prints the results, and turns menu selections into `source/name` targets. It also defines `AURPackage` and `hamming_similarity`. |
| `aurhelper.query.warnings` | `AURWarnings`, which collects and prints orphaned, out-of-date, missing and locally newer packages. |

## Examples

Parse a command line the way pacman would:

```python
import io

from aurhelper.settings.parser import Arguments, TargetMode

args = Arguments()
args.parse(["-Syu", "--needed", "yay"], io.StringIO())

print(args.op)                           # "S"
print(args.exists_arg("u", "sysupgrade"))
print(args.need_root(TargetMode.ANY))    # True: a refresh needs root
print(args.format_args())
```

Show where two versions differ and compare them:

```python
from aurhelper.query.version_diff import get_version_diff, vercmp

left, right = get_version_diff("1.0.0-1", "1.0.1-1")
print(left, right)
print(vercmp("1.0.0-1", "1.0.1-1"))      # -1
```

Order packages so that each one builds after what it depends on:

```python
from aurhelper.topo import Graph

graph = Graph()
graph.depend_on("app", "libfoo")
graph.depend_on("libfoo", "libbar")

for layer in graph.topo_sorted_layer_map(None):
    print(sorted(layer))
# ['libbar'], then ['libfoo'], then ['app']
```

Load the configuration, apply command-line overrides and save it.
`new_config` creates the build directory. It raises
`PrivilegeElevatorNotFoundError` when no privilege elevator is on the `PATH`.

```python
from aurhelper.settings.config import new_config
from aurhelper.settings.dirs import get_config_path
from aurhelper.settings.parser import Arguments

path = get_config_path()
config = new_config(path, "12.0.0")
config.parse_command_line(Arguments(), ["--bottomup", "--sortby", "name"])
config.save(path, "12.0.0")
```

Turn colour off, for example when output goes to a pipe:

```python
from aurhelper.text.color import set_use_color, cyan

set_use_color(False)
print(cyan("plain text"))
```

## What the package does not do

- It has no command-line program. The package is a library, and nothing is
  installed as a command.
- It does not talk to the AUR over the network. `SourceQueryBuilder` and
  `query_aur` take a client object supplied by the caller. That object has a
  method `get(needles, by, contains)` which returns `AURPackage` objects.
- It does not read the pacman databases. The search functions take a database
  object supplied by the caller, with `sync_packages`, `local_package` and
  `package_groups`. Its packages carry `name`, `version`, `description`,
  `size`, `isize`, `provides` and a `db` with a `name`.
- It does not read `pacman.conf`. It does not download, build or install
  packages. It does not track VCS package sources. `CmdBuilder` only prepares
  the commands, and a runner executes them.