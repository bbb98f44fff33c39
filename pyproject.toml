[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aurhelper"
version = "12.0.0"
description = "Building blocks for an Arch User Repository helper: argument parsing, configuration, search ranking and dependency graphs"
requires-python = ">=3.10"
dependencies = []
keywords = ["arch", "aur", "pacman", "package-manager", "makepkg"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["aurhelper"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
