"""Filesystem layout of the pre-built UI bundle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

STATIC_URL_PREFIX = "/_next/static"
STATIC_SUBDIR = Path("_next") / "static"


@dataclass(frozen=True)
class SitePaths:
    base_dir: Path
    static_dir: Path

    def html_file(self, name: str) -> Path:
        return self.base_dir / name


def resolve_site_paths(dist_dir: Path) -> SitePaths:
    """Compute the page and asset directories for a dist tree.

    Nothing is checked on disk here; missing files surface per request.
    """

    return SitePaths(base_dir=dist_dir, static_dir=dist_dir / STATIC_SUBDIR)
