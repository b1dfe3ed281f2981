"""File reading and config-file discovery."""

from __future__ import annotations

from pathlib import Path

CONFIG_SUFFIX = ".cfg"


def read_file(path: Path | str) -> str:
    """Read a UTF-8 text file. Raises OSError when it cannot be read."""
    return Path(path).read_text(encoding="utf-8")


def find_config_files(root: Path | str, suffix: str = CONFIG_SUFFIX) -> list[tuple[str, Path]]:
    """Return ``(relative path, absolute path)`` for every *suffix* file under *root*.

    Sorted by relative path so preprocessing order is stable.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"not a directory: {root}")
    found = [
        (path.relative_to(root).as_posix(), path.resolve())
        for path in root.rglob(f"*{suffix}")
        if path.is_file()
    ]
    return sorted(found)
