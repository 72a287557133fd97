"""File classification policies."""

from .pattern_list import Classification, LANGUAGE_POLICIES, PatternList

__all__ = ["Classification", "LANGUAGE_POLICIES", "PatternList"]
