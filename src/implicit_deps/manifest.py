"""
Manifest resolution: finds the package.json governing a source file and
turns its dependency sections into the set of packages the file may import.

A missing manifest and a broken one are treated the same way: the file is
allowed nothing beyond built-ins and ignored names.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Mapping, Optional, Union

from .cli_config import RuleOptions
from .error_handling import log_manifest_error
from .structured_logging import log_manifest_resolved

MANIFEST_FILE_NAME = "package.json"

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"
PEER_DEPENDENCIES = "peerDependencies"
OPTIONAL_DEPENDENCIES = "optionalDependencies"

DEPENDENCY_SECTIONS = (
    DEPENDENCIES,
    DEV_DEPENDENCIES,
    PEER_DEPENDENCIES,
    OPTIONAL_DEPENDENCIES,
)

BYTE_ORDER_MARK = "\ufeff"


@dataclass(frozen=True)
class Manifest:
    """Dependency sections of a parsed package.json."""

    path: Optional[Path] = None
    sections: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    @classmethod
    def empty(cls, path: Optional[Path] = None) -> "Manifest":
        return cls(path=path, sections={})

    def packages_in(self, section: str) -> FrozenSet[str]:
        """Package names declared in a section (empty if absent)."""
        return self.sections.get(section, frozenset())


def find_manifest(start_dir: Union[str, Path]) -> Optional[Path]:
    """
    Find the nearest package.json at or above a directory.

    Args:
        start_dir: Directory to start searching from

    Returns:
        Optional[Path]: Path to the manifest, or None at the filesystem root
    """
    current = Path(os.path.abspath(start_dir))
    while True:
        candidate = current / MANIFEST_FILE_NAME
        if candidate.exists():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def parse_manifest_text(content: str, path: Optional[Path] = None) -> Manifest:
    """
    Parse package.json text into a Manifest.

    Malformed JSON, a non-object document, and non-object sections are
    tolerated: the affected parts are simply treated as absent.
    """
    if content.startswith(BYTE_ORDER_MARK):
        content = content[len(BYTE_ORDER_MARK) :]

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        log_manifest_error(
            "Invalid JSON in package.json, treating it as empty",
            "parse_manifest_text",
            manifest_path=path,
            exception=e,
        )
        return Manifest.empty(path)

    if not isinstance(data, dict):
        log_manifest_error(
            "package.json must contain a JSON object, treating it as empty",
            "parse_manifest_text",
            manifest_path=path,
        )
        return Manifest.empty(path)

    sections = {}
    for section in DEPENDENCY_SECTIONS:
        section_deps = data.get(section)
        if isinstance(section_deps, dict):
            sections[section] = frozenset(section_deps)

    return Manifest(path=path, sections=sections)


def load_manifest(manifest_path: Union[str, Path]) -> Manifest:
    """
    Read and parse a package.json file.

    Never raises: read errors produce an empty Manifest.
    """
    path = Path(manifest_path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        log_manifest_error(
            "Could not read package.json, treating it as empty",
            "load_manifest",
            manifest_path=path,
            exception=e,
        )
        return Manifest.empty(path)

    return parse_manifest_text(content, path)


def selected_sections(options: RuleOptions) -> List[str]:
    """
    Manifest sections whose packages may be imported.

    devDependencies and peerDependencies are alternatives, never combined.
    """
    sections = [DEPENDENCIES]
    sections.append(DEV_DEPENDENCIES if options.dev else PEER_DEPENDENCIES)
    if options.optional:
        sections.append(OPTIONAL_DEPENDENCIES)
    return sections


def allowed_packages(manifest: Manifest, options: RuleOptions) -> FrozenSet[str]:
    """Union of the package names in the sections selected by options."""
    allowed = set()
    for section in selected_sections(options):
        allowed.update(manifest.packages_in(section))
    return frozenset(allowed)


def resolve_allowed_packages(
    file_path: Union[str, Path], options: RuleOptions
) -> FrozenSet[str]:
    """
    Resolve the packages a source file is allowed to import.

    Args:
        file_path: Path to the source file being checked
        options: Rule options selecting the manifest sections

    Returns:
        FrozenSet[str]: Allowed package names (empty without a usable manifest)
    """
    manifest_path = find_manifest(Path(os.path.abspath(file_path)).parent)
    if manifest_path is None:
        log_manifest_resolved(None, [], 0)
        return frozenset()

    manifest = load_manifest(manifest_path)
    result = allowed_packages(manifest, options)
    log_manifest_resolved(str(manifest_path), selected_sections(options), len(result))
    return result
