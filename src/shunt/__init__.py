"""Run several commands at once and multiplex their output."""

__version__ = "0.1.0"
