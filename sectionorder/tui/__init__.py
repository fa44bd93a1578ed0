"""
Terminal UI package for sectionorder.

The Textual application lives in ``sectionorder.tui.app``; it is imported
lazily so that importing the package does not pull in Textual.
"""

from __future__ import annotations

from typing import Any

__all__ = ["main"]


def main(*args: Any, **kwargs: Any) -> Any:
    """Entry point used by the ``sectionorder`` console script."""
    from sectionorder.main import main as _main

    return _main(*args, **kwargs)
