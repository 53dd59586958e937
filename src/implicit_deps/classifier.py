"""
Dependency classification: decides which imported packages of a source file
are missing from its package.json.

Each reference is first tagged as relative, built-in or external. Only
external references are checked against the allowed package set, which is
resolved at most once per file and only if an external reference exists.
"""

import re
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Union

from .builtin_modules import is_builtin_module
from .cli_config import OPTION_DEV, OPTION_IGNORE, OPTION_OPTIONAL, RuleOptions
from .import_extractor import find_imports
from .manifest import resolve_allowed_packages
from .reference import Finding, Reference, SourceFile
from .structured_logging import log_check_complete, log_check_start, log_finding

RULE_NAME = "no-implicit-dependencies"

# "./x", "../x", ".", ".."
_RELATIVE_PATH = re.compile(r"^\.\.?(?:$|[\\/])")
# "/abs", "\\share", "C:", "file:///x"
_ROOTED_PATH = re.compile(r"^(?:[\\/]|[A-Za-z]:(?:$|[\\/])|[A-Za-z][\w+.-]*://)")

AllowedPackagesResolver = Callable[[Union[str, Path], RuleOptions], FrozenSet[str]]


class ReferenceKind(Enum):
    """What a module specifier points at."""

    RELATIVE = "relative"  # a path, never a package
    BUILTIN = "builtin"  # a Node.js core module
    EXTERNAL = "external"  # a package that must be declared


@dataclass(frozen=True)
class ClassifiedReference:
    """A module specifier tagged with its kind and package name."""

    kind: ReferenceKind
    package_name: Optional[str] = None


def is_relative_module_name(text: str) -> bool:
    """Check whether a specifier is a path rather than a package name."""
    return bool(_RELATIVE_PATH.match(text) or _ROOTED_PATH.match(text))


def get_package_name(text: str) -> str:
    """
    Derive the package name from a module specifier.

    Scoped packages keep two segments, everything else keeps one:
    ``@scope/pkg/sub`` gives ``@scope/pkg``, ``lodash/fp`` gives ``lodash``.
    """
    parts = text.split("/")
    if not text.startswith("@"):
        return parts[0]
    return "/".join(parts[:2])


def classify_reference(text: str) -> ClassifiedReference:
    """Tag a module specifier as relative, built-in or external."""
    if is_relative_module_name(text):
        return ClassifiedReference(ReferenceKind.RELATIVE)

    package_name = get_package_name(text)
    if is_builtin_module(package_name):
        return ClassifiedReference(ReferenceKind.BUILTIN, package_name)
    return ClassifiedReference(ReferenceKind.EXTERNAL, package_name)


def failure_string(package_name: str) -> str:
    return f"Module '{package_name}' is not listed as dependency in package.json"


class FileAnalysis:
    """
    Classification context for a single source file.

    Owns the cached allowed package set for that file; a new FileAnalysis
    is created for every file so nothing is shared between files.
    """

    def __init__(
        self,
        source_file: SourceFile,
        options: RuleOptions,
        resolver: Optional[AllowedPackagesResolver] = None,
    ):
        """
        Initialize the analysis.

        Args:
            source_file: The file to check
            options: Rule options
            resolver: Computes the allowed package set for a file path
        """
        self.source_file = source_file
        self.options = options
        self._resolver = resolver or resolve_allowed_packages
        self._allowed_packages: Optional[FrozenSet[str]] = None

    @property
    def allowed_packages(self) -> FrozenSet[str]:
        """Allowed package set, resolved on first access."""
        if self._allowed_packages is None:
            self._allowed_packages = self._resolver(
                self.source_file.file_name, self.options
            )
        return self._allowed_packages

    def should_report(self, package_name: str) -> bool:
        has_dependency = package_name in self.allowed_packages
        should_ignore = package_name in self.options.ignored
        return not (has_dependency or should_ignore)

    def _make_finding(self, reference: Reference, package_name: str) -> Finding:
        return Finding(
            package_name=package_name,
            message=failure_string(package_name),
            file_name=self.source_file.file_name,
            line=reference.line,
            column=reference.column,
            start=reference.start,
            end=reference.end,
            rule_name=RULE_NAME,
        )

    def findings(self) -> Iterator[Finding]:
        """Yield a Finding per undeclared package reference, in source order."""
        for reference in find_imports(self.source_file):
            classified = classify_reference(reference.text)
            if classified.kind is not ReferenceKind.EXTERNAL:
                continue
            if self.should_report(classified.package_name):
                log_finding(classified.package_name, reference.line, reference.column)
                yield self._make_finding(reference, classified.package_name)


def classify(
    source_file: SourceFile,
    options: RuleOptions,
    resolver: Optional[AllowedPackagesResolver] = None,
) -> Iterator[Finding]:
    """
    Lazily classify every import of a source file.

    Args:
        source_file: The file to check
        options: Rule options
        resolver: Override for the allowed package resolver

    Returns:
        Iterator[Finding]: Single-use iterator of findings in source order
    """
    return FileAnalysis(source_file, options, resolver).findings()


class NoImplicitDependenciesRule:
    """Disallows importing modules that are not listed in package.json."""

    metadata: Dict[str, Any] = {
        "ruleName": RULE_NAME,
        "description": (
            "Disallows importing modules that are not listed as dependency "
            "in the project's package.json"
        ),
        "descriptionDetails": (
            "Disallows importing transient dependencies and modules installed "
            "above your package's root directory."
        ),
        "optionsDescription": (
            'By default the rule looks at "dependencies" and "peerDependencies".\n'
            f'By adding the "{OPTION_DEV}" option the rule looks at '
            '"devDependencies" instead of "peerDependencies".\n'
            f'By adding the "{OPTION_OPTIONAL}" option the rule also looks at '
            '"optionalDependencies".\n'
            f'By adding the "{OPTION_IGNORE}" option the rule will ignore certain '
            "imports e.g. alias for absolute imports."
        ),
        "options": {
            "type": "object",
            "properties": {
                OPTION_DEV: {"type": "boolean"},
                OPTION_OPTIONAL: {"type": "boolean"},
                OPTION_IGNORE: {"type": "array", "items": {"type": "string"}},
            },
        },
        "optionExamples": [
            True,
            [True, {OPTION_DEV: True, OPTION_OPTIONAL: False, OPTION_IGNORE: ["#"]}],
        ],
        "type": "functionality",
        "typescriptOnly": False,
    }

    def __init__(
        self,
        options: Optional[RuleOptions] = None,
        resolver: Optional[AllowedPackagesResolver] = None,
    ):
        self.options = options or RuleOptions()
        self.resolver = resolver

    @staticmethod
    def failure_string(package_name: str) -> str:
        return failure_string(package_name)

    def apply(self, source_file: SourceFile) -> List[Finding]:
        """Check one source file and return all of its findings."""
        start_time = time.time()
        log_check_start(source_file.file_name)

        findings = list(classify(source_file, self.options, self.resolver))

        duration_ms = int((time.time() - start_time) * 1000)
        log_check_complete(source_file.file_name, duration_ms, len(findings))
        return findings

    def apply_to_path(self, file_path: Union[str, Path]) -> List[Finding]:
        """
        Read and check a source file.

        Raises:
            ValueError: If the file cannot be read
        """
        return self.apply(SourceFile.from_path(file_path))
