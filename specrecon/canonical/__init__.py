"""Text canonicalization helpers."""

from specrecon.canonical.normalize import normalize_for_matching
from specrecon.canonical.sections import detect_section

__all__ = ["normalize_for_matching", "detect_section"]
