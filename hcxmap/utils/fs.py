"""
Working-directory file discovery.
"""

from pathlib import Path
from typing import List


def list_files(workdir: Path, suffix: str) -> List[Path]:
    """
    Return the files directly inside `workdir` with the given suffix, sorted.

    Raises
    ------
    FileNotFoundError, NotADirectoryError
        When `workdir` does not exist or is not a directory.
    """
    workdir = Path(workdir)
    if not workdir.exists():
        raise FileNotFoundError(f"working directory not found: {workdir}")
    if not workdir.is_dir():
        raise NotADirectoryError(f"not a directory: {workdir}")
    return sorted(p for p in workdir.iterdir() if p.is_file() and p.suffix == suffix)
