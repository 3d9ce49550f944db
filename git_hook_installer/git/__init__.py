"""Repository location and bulk discovery."""

from .repo import find_repo, repo_from_root
from .scan import ScanEngine, resolve_scan_depth

__all__ = ["ScanEngine", "find_repo", "repo_from_root", "resolve_scan_depth"]
