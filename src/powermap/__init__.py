"""Entity reconciliation, link grouping and permissions for a power-mapping database."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    __version__ = "0+unknown"
