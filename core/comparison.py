"""
Preference-set comparison.
"""

from __future__ import annotations

from typing import Sequence

from utils.schemas import ComparisonResult, Entity

DEFAULT_PREVIEW_LENGTH = 10


def compare(
    set_a: Sequence[Entity],
    set_b: Sequence[Entity],
    preview_length: int = DEFAULT_PREVIEW_LENGTH,
) -> ComparisonResult:
    """
    Compare two ranked preference sets by entity id.

    ``common`` keeps A's order, each unique list keeps its own side's
    order.  Unique lists are cut to *preview_length*; the counts never
    are.  The match percentage is ``|common| / max(|A|, |B|) * 100``,
    ``"0.00"`` when both sets are empty.
    """
    ids_a = {e.id for e in set_a}
    ids_b = {e.id for e in set_b}

    common = [e for e in set_a if e.id in ids_b]
    unique_to_a = [e for e in set_a if e.id not in ids_b]
    unique_to_b = [e for e in set_b if e.id not in ids_a]

    denominator = max(len(set_a), len(set_b))
    percentage = len(common) / denominator * 100 if denominator else 0.0

    return ComparisonResult(
        common=common,
        common_count=len(common),
        unique_to_a=unique_to_a[:preview_length],
        unique_to_b=unique_to_b[:preview_length],
        match_percentage=f"{percentage:.2f}",
        total_a=len(set_a),
        total_b=len(set_b),
    )
