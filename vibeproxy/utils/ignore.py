"""File ignore rules handling using pathspec."""

from typing import Optional

import pathspec

from vibeproxy.constants import BUILTIN_IGNORES


class IgnoreRules:
    """Decides which repository paths are kept out of a workspace.

    Combines the built-in patterns with the repository's own .gitignore.
    """

    def __init__(self, gitignore: Optional[str] = None, extra_patterns: Optional[list[str]] = None):
        """Initialize ignore rules.

        Args:
            gitignore: Contents of the repository's .gitignore, if any
            extra_patterns: Additional gitwildmatch patterns
        """
        patterns = list(BUILTIN_IGNORES)

        if gitignore:
            patterns.extend(gitignore.splitlines())

        if extra_patterns:
            patterns.extend(extra_patterns)

        # Filter out empty lines and comments
        self.patterns = [p.strip() for p in patterns if p.strip() and not p.strip().startswith("#")]
        self.spec = pathspec.PathSpec.from_lines("gitwildmatch", self.patterns)

    def should_ignore(self, path: str) -> bool:
        """Check if a repository-relative path should be ignored.

        Args:
            path: Forward-slash separated path

        Returns:
            True if the path should be ignored
        """
        return self.spec.match_file(path.lstrip("/"))

    def filter(self, paths: list[str]) -> list[str]:
        """Return the paths that are not ignored, preserving order."""
        return [p for p in paths if not self.should_ignore(p)]
