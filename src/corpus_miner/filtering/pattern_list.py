"""File classification by language policy.

A policy is a pair of gitwildmatch pattern lists:

1. deny patterns (highest priority): vendored, generated or minified files.
   They are not mined, and their presence is flagged on the project.
2. accept patterns: source files of the policy's language, which are mined.
3. anything else is silently ignored.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

import pathspec

from ..config import FilterConfig

logger = logging.getLogger(__name__)


class Classification(str, Enum):
    """Outcome of classifying one path."""

    ACCEPT = "accept"
    DENY = "deny"
    IGNORE = "ignore"


_COMMON_DENY = [
    "node_modules/",
    "bower_components/",
    "vendor/",
    "third_party/",
]

LANGUAGE_POLICIES: Dict[str, Dict[str, List[str]]] = {
    "javascript": {
        "accept": ["*.js", "*.mjs", "*.cjs", "*.jsx"],
        "deny": _COMMON_DENY
        + ["*.min.js", "*-min.js", "*.bundle.js", "dist/", "build/"],
    },
    "typescript": {
        "accept": ["*.ts", "*.tsx", "*.mts", "*.cts"],
        "deny": _COMMON_DENY + ["*.d.ts", "dist/", "build/"],
    },
    "python": {
        "accept": ["*.py", "*.pyi"],
        "deny": _COMMON_DENY
        + ["site-packages/", "venv/", ".venv/", "*_pb2.py", "*_pb2_grpc.py"],
    },
    "java": {
        "accept": ["*.java"],
        "deny": _COMMON_DENY + ["target/", "generated-sources/"],
    },
}


class PatternList:
    """Classifies repository paths as accepted, denied or ignored."""

    def __init__(self, accept_patterns: Iterable[str], deny_patterns: Iterable[str]):
        self.accept_patterns = list(accept_patterns)
        self.deny_patterns = list(deny_patterns)

        # Pre-compile pathspec patterns for efficiency
        self._accept_spec = pathspec.PathSpec.from_lines(
            "gitwildmatch", self.accept_patterns
        )
        self._deny_spec = pathspec.PathSpec.from_lines(
            "gitwildmatch", self.deny_patterns
        )

    @classmethod
    def for_language(
        cls, language: str, filters: Optional[FilterConfig] = None
    ) -> "PatternList":
        """Build the pattern list for a named policy.

        Args:
            language: Policy name (see LANGUAGE_POLICIES)
            filters: Optional extra patterns from configuration

        Raises:
            ValueError: If the policy name is unknown
        """
        key = language.strip().lower()
        if key not in LANGUAGE_POLICIES:
            supported = ", ".join(sorted(LANGUAGE_POLICIES))
            raise ValueError(
                f"Unknown language policy '{language}'. Supported: {supported}"
            )

        policy = LANGUAGE_POLICIES[key]
        accept = list(policy["accept"])
        deny = list(policy["deny"])
        if filters is not None:
            accept.extend(filters.extra_accept_patterns)
            deny.extend(filters.extra_deny_patterns)

        logger.debug(
            f"Language policy {key}: {len(accept)} accept, {len(deny)} deny patterns"
        )
        return cls(accept, deny)

    @staticmethod
    def supported_languages() -> List[str]:
        return sorted(LANGUAGE_POLICIES)

    def classify(self, rel_path: str) -> Classification:
        """Classify a path relative to the repository root."""
        path_str = rel_path.replace("\\", "/")

        if self._deny_spec.match_file(path_str):
            return Classification.DENY

        if self._accept_spec.match_file(path_str):
            return Classification.ACCEPT

        return Classification.IGNORE
