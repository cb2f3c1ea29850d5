from __future__ import annotations

import re
import secrets
import string
from typing import Callable, Iterable, Mapping, Optional, Tuple, Union

from variant_engine.core.config import settings
from variant_engine.core.logging import get_logger
from variant_engine.services.contracts import VariantRepository

logger = get_logger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_NON_ALNUM_RUNS = re.compile(r"[^a-z0-9]+")
_NOT_SKU_CHARS = re.compile(r"[^a-z0-9-]")

FALLBACK_BASE = "item"

Pairs = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def _iter_pairs(pairs: Pairs) -> Iterable[Tuple[str, str]]:
    if isinstance(pairs, Mapping):
        return pairs.items()
    return pairs


def sku_base(product_name: str, max_length: Optional[int] = None) -> str:
    limit = settings.SKU_BASE_MAX_LENGTH if max_length is None else max_length
    base = _NON_ALNUM_RUNS.sub("-", (product_name or "").lower()).strip("-")
    return base[:limit] or FALLBACK_BASE


def sku_variant_part(pairs: Pairs) -> str:
    parts = []
    for key, value in _iter_pairs(pairs):
        chunk = f"{str(key)[:3]}{str(value)[:3]}".lower()
        parts.append(_NOT_SKU_CHARS.sub("", chunk))
    return "-".join(parts)


def random_suffix(length: Optional[int] = None) -> str:
    size = settings.SKU_SUFFIX_LENGTH if length is None else length
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(size))


def build_candidate_sku(product_name: str, pairs: Pairs, max_length: Optional[int] = None) -> str:
    """``base-variantPart``, e.g. ("Cotton T-Shirt", {"size": "M", "color": "Red"}) -> "cotton-t-s-sizm-colred"."""
    base = sku_base(product_name, max_length)
    variant_part = sku_variant_part(pairs)
    return f"{base}-{variant_part}" if variant_part else base


class SkuSynthesizer:
    """Readable SKUs with a random suffix when the readable form is taken.

    The availability lookup is advisory only. Two concurrent writers can pick
    the same candidate; the unique constraint on ``product_variants.sku``
    decides, and the variant store retries with ``force_suffix=True``.
    """

    def __init__(
        self,
        variants: VariantRepository,
        *,
        suffix_factory: Optional[Callable[[], str]] = None,
        base_max_length: Optional[int] = None,
    ):
        self.variants = variants
        self.suffix_factory = suffix_factory or random_suffix
        self.base_max_length = base_max_length

    def candidate(self, product_name: str, pairs: Pairs) -> str:
        return build_candidate_sku(product_name, pairs, self.base_max_length)

    async def synthesize(self, product_name: str, pairs: Pairs, *, force_suffix: bool = False) -> str:
        sku = self.candidate(product_name, pairs)
        if not force_suffix and not await self.variants.sku_exists(sku):
            return sku

        suffixed = f"{sku}-{self.suffix_factory()}"
        logger.debug(f"SKU {sku} unavailable, using {suffixed}")
        return suffixed
