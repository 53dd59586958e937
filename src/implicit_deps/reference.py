"""
Data model shared by the import extractor, the classifier and the reporters.
"""

from dataclasses import asdict, dataclass
from enum import Flag, auto
from pathlib import Path
from typing import Any, Dict, Union


class ImportKind(Flag):
    """Syntactic forms that can reference an external module."""

    IMPORT = auto()  # import x from "m" / import "m"
    EXPORT_FROM = auto()  # export { x } from "m"
    IMPORT_EQUALS = auto()  # import x = require("m")
    REQUIRE = auto()  # require("m")
    DYNAMIC_IMPORT = auto()  # import("m")
    IMPORT_TYPE = auto()  # type T = typeof import("m")

    ALL = IMPORT | EXPORT_FROM | IMPORT_EQUALS | REQUIRE | DYNAMIC_IMPORT | IMPORT_TYPE


@dataclass(frozen=True)
class Reference:
    """A module specifier found in a source file."""

    text: str
    line: int
    column: int
    start: int
    end: int
    kind: ImportKind = ImportKind.IMPORT


@dataclass(frozen=True)
class SourceFile:
    """A source file's name and full text."""

    file_name: str
    text: str

    @classmethod
    def from_path(cls, file_path: Union[str, Path]) -> "SourceFile":
        """
        Read a source file from disk.

        Args:
            file_path: Path to a JavaScript or TypeScript file

        Returns:
            SourceFile: The file name and its decoded text

        Raises:
            ValueError: If the file cannot be read
        """
        path = Path(file_path)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except PermissionError:
            raise ValueError(f"Permission denied reading file: {path}")
        except OSError as e:
            raise ValueError(f"Error reading file {path}: {e}")

        if text.startswith("\ufeff"):
            text = text[1:]
        return cls(file_name=str(path), text=text)


@dataclass(frozen=True)
class Finding:
    """A module imported without being declared in package.json."""

    package_name: str
    message: str
    file_name: str
    line: int
    column: int
    start: int
    end: int
    rule_name: str = "no-implicit-dependencies"

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to a JSON-serialisable dictionary."""
        return asdict(self)
