"""Hashtag extraction from freeform note text."""

from __future__ import annotations

import re
from collections import Counter

from moodlens.domains.mood.domain_logic.models import CategoryGroup, DailySeries

# A '#' not glued to a preceding word character (so "C#" is not a tag)
_HASHTAG_RE = re.compile(r"(?<![\w#])#([\w][\w-]*)")
_STRIP = "-_"


def extract_hashtags(text: str | None) -> frozenset[str]:
    """Return the normalized hashtags in ``text``.

    Tokens are case-folded and stripped of leading/trailing ``-``/``_``;
    tokens that end up empty are dropped.

    >>> sorted(extract_hashtags("Long walk #Outside, then #outside-again #__"))
    ['outside', 'outside-again']
    """
    if not text:
        return frozenset()
    tags = (m.group(1).strip(_STRIP).casefold() for m in _HASHTAG_RE.finditer(text))
    return frozenset(t for t in tags if t)


def hashtag_index(series: DailySeries) -> dict[str, int]:
    """Number of days each hashtag was active, most frequent first."""
    counts = Counter(
        c.label for day in series.flags for c in day if c.group is CategoryGroup.HASHTAG
    )
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))
