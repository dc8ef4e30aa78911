"""Rule-based structured extraction for syllabus text."""

from .pattern_engine import PatternExtractionEngine, display_title
from .rules import DEFAULT_RULES, PatternRules

__all__ = ["DEFAULT_RULES", "PatternExtractionEngine", "PatternRules", "display_title"]
