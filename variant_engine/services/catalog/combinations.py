from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from variant_engine.core.config import settings
from variant_engine.core.exceptions import ValidationException


@dataclass(frozen=True)
class FlaggedAttribute:
    """An attribute value together with the variant flag of its template."""
    key: str
    value: str
    is_variant: bool


def group_variant_values(attributes: Iterable[FlaggedAttribute]) -> Dict[str, List[str]]:
    """Distinct values per variant key, keys and values in first-seen order."""
    groups: Dict[str, List[str]] = {}
    for attr in attributes:
        if not attr.is_variant:
            continue
        values = groups.setdefault(attr.key, [])
        if attr.value not in values:
            values.append(attr.value)
    return groups


def count_combinations(groups: Dict[str, List[str]]) -> int:
    total = 1
    for values in groups.values():
        total *= len(values)
    return total


def generate_combinations(
    attributes: Iterable[FlaggedAttribute],
    max_combinations: Optional[int] = None,
) -> List[Dict[str, str]]:
    """Cartesian product of the distinct values of every variant-flagged key.

    The order is stable: keys by first appearance, then values by first
    appearance, with the last key varying fastest. Callers rely on it for
    variant ``sort_order`` and SKU generation order.
    """
    groups = group_variant_values(attributes)
    if not groups:
        raise ValidationException("No variant attributes found", code="NO_VARIANT_ATTRIBUTES")

    limit = settings.MAX_VARIANT_COMBINATIONS if max_combinations is None else max_combinations
    total = count_combinations(groups)
    if total > limit:
        raise ValidationException(
            f"{total} variant combinations exceed the limit of {limit}",
            code="TOO_MANY_COMBINATIONS",
            metadata={"combinations": total, "limit": limit},
        )

    keys = list(groups)
    return [dict(zip(keys, values)) for values in itertools.product(*(groups[k] for k in keys))]
