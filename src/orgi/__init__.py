"""orgi: keep an org-mode issue log in sync with TODO comments in source code."""

from orgi._version import __version__

__all__ = ["__version__"]
