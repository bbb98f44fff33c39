"""Building blocks for a pacman wrapper and AUR helper: text output, settings, dependency graphs and package search."""

__version__ = "12.0.0"