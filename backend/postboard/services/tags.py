"""
Postboard Backend - Tag Normalization
=====================================

What:  Reduces raw tag input to the canonical form stored in `tags.name`.
How:   Trim surrounding whitespace, lower-case (Unicode-aware), then drop
       duplicates while keeping the first-seen order.

Examples:
    normalize_tags([" PHP ", "php", "Laravel"])  → ["php", "laravel"]
    normalize_tags(["ÉCOLE", "école"])           → ["école"]
    normalize_tags([])                           → []

The function is idempotent: normalizing an already-normalized list returns it
unchanged.
"""

from typing import Iterable, List


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def normalize_tags(tags: Iterable[str]) -> List[str]:
    # dict preserves insertion order, so the first spelling of a tag wins its slot
    return list(dict.fromkeys(normalize_tag(tag) for tag in tags))
