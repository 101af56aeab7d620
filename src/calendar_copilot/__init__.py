"""Calendar Copilot: turns model-written calendar commands into calendar calls."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__", "main"]


def main() -> None:
    from .cli import main as cli_main

    raise SystemExit(cli_main())
