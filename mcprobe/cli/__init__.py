"""mcprobe command-line interface."""

from mcprobe.cli.main import Mode, cli, dispatch, main, select_mode

__all__ = ["Mode", "cli", "dispatch", "main", "select_mode"]
