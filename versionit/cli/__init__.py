"""version-it CLI.

Main entry point is in main.py which registers all commands.

Usage:
    version-it bump --version 1.2.3 --bump minor
    python -m versionit next --bump patch
"""


def __getattr__(name: str):
    """Lazy import to avoid RuntimeWarning when running as module."""
    if name == "app":
        from versionit.cli.main import app

        return app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["app"]
