"""
no-implicit-deps: flags imports of packages that are not declared in the
nearest package.json.
"""

from .classifier import NoImplicitDependenciesRule, classify, get_package_name
from .cli_config import RuleOptions, parse_rule_options
from .manifest import resolve_allowed_packages
from .reference import Finding, Reference, SourceFile

__version__ = "1.0.0"

__all__ = [
    "Finding",
    "NoImplicitDependenciesRule",
    "Reference",
    "RuleOptions",
    "SourceFile",
    "classify",
    "get_package_name",
    "parse_rule_options",
    "resolve_allowed_packages",
]
