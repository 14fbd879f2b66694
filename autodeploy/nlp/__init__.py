"""
Natural language parsing of deployment requests.
"""

from .rules import extract_with_hits, parse_description

__all__ = [
    "extract_with_hits",
    "parse_description",
]
