from typing import Literal, overload
from pathlib import Path


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[False] = False) -> Path | None: ...


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[True] = True) -> Path: ...


def find_config_file(filename: str, cwd: Path | None = None, required: bool = True) -> Path | None:
    """
    Find a file with the given *filename* in the given *cwd* or any of its parent directories.
    """

    if cwd is None:
        cwd = Path.cwd()

    for directory in [cwd] + list(cwd.parents):
        file = directory / filename
        if file.exists():
            return file

    if required:
        raise FileNotFoundError(f"Could not find '{filename}' in '{cwd}' or any of its parent directories.")

    return None


def glob_files(workspace: Path, patterns: str) -> list[Path]:
    """
    Resolve a comma-separated list of glob *patterns* relative to *workspace*. Files are returned in the order of the
    patterns (sorted within a pattern) and every file is returned only once. Directories are ignored.
    """

    result: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns.split(","):
        pattern = pattern.strip()
        if not pattern:
            continue
        if Path(pattern).is_absolute():
            candidates = [Path(pattern)] if Path(pattern).exists() else []
        else:
            candidates = sorted(workspace.glob(pattern))
        for path in candidates:
            if path.is_file() and path not in seen:
                seen.add(path)
                result.append(path)
    return result
