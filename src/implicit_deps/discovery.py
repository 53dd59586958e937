"""
Expands command line paths into the source files to check.
"""

import os
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Union

from .cli_config import DiscoveryConfig


def discover_source_files(
    paths: Iterable[Union[str, Path]],
    extensions: Sequence[str] = (),
    exclude_dirs: Sequence[str] = (),
) -> List[Path]:
    """
    Collect JavaScript/TypeScript files from files and directories.

    Files given explicitly are always kept, whatever their extension.
    Directories are walked recursively, skipping excluded directory names
    and anything that does not have one of the given extensions.

    Args:
        paths: Files and directories from the command line
        extensions: File suffixes to pick up inside directories
        exclude_dirs: Directory names never descended into

    Returns:
        List[Path]: Sorted, de-duplicated file paths
    """
    defaults = DiscoveryConfig()
    suffixes = {ext.lower() for ext in (extensions or defaults.extensions)}
    excluded = set(exclude_dirs or defaults.exclude_dirs)

    found: Set[Path] = set()
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            for root, dirs, files in os.walk(path):
                dirs[:] = [d for d in dirs if d not in excluded]
                for name in files:
                    # .d.ts files only declare types for other packages
                    if name.endswith(".d.ts"):
                        continue
                    if Path(name).suffix.lower() in suffixes:
                        found.add(Path(root) / name)
        elif path.is_file():
            found.add(path)

    return sorted(found)
