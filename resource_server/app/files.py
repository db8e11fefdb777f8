"""Path resolution for the protected file tree."""
from __future__ import annotations

import stat
from pathlib import Path


def resolve_under_root(root: Path, relative: str) -> Path:
    """Resolve relative against root, refusing anything that escapes root.

    Raises FileNotFoundError for escapes and for paths that do not exist, so
    both look the same to a caller.
    """
    root = root.resolve()
    candidate = (root / relative.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        raise FileNotFoundError(relative)
    if not candidate.exists():
        raise FileNotFoundError(relative)
    return candidate


def list_directory(path: Path) -> list[dict]:
    entries = []
    for child in sorted(path.iterdir(), key=lambda p: p.name):
        # dangling symlinks and unreadable entries are left out
        try:
            st = child.stat()
        except OSError:
            continue
        is_dir = stat.S_ISDIR(st.st_mode)
        entries.append({
            "name": child.name,
            "is_dir": is_dir,
            "size": 0 if is_dir else st.st_size,
        })
    return entries
