from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from variant_engine.core.config import settings
from variant_engine.core.exceptions import (
    CatalogException,
    ConflictException,
    DuplicateSkuError,
    NotFoundException,
    ValidationException,
)
from variant_engine.core.logging import get_logger
from variant_engine.schemas.variant import (
    CombinationError,
    VariantAttributePair,
    VariantCreate,
    VariantGenerationResult,
    VariantRead,
    VariantUpdate,
)
from variant_engine.services.catalog.access import require_product_access
from variant_engine.services.catalog.combinations import FlaggedAttribute, generate_combinations
from variant_engine.services.catalog.sku import SkuSynthesizer
from variant_engine.services.catalog.template_registry import AttributeTemplateRegistry
from variant_engine.services.contracts import (
    ProductAttributeRepository,
    ProductDirectory,
    ProductSnapshot,
    VariantRepository,
)

logger = get_logger(__name__)

Pair = Tuple[str, str]

# Columns that cannot be cleared by a partial update
_NOT_NULL_VARIANT_FIELDS = ("price", "quantity", "images", "is_active", "sort_order")


class VariantStore:
    """Create, update, delete and bulk-generate the variants of a product.

    Every single-variant mutation is one storage transaction. Bulk generation
    is deliberately not: each combination is created on its own and failures
    are collected, so a partial batch is a valid outcome.
    """

    def __init__(
        self,
        repository: VariantRepository,
        attributes: ProductAttributeRepository,
        directory: ProductDirectory,
        templates: AttributeTemplateRegistry,
        sku_synthesizer: Optional[SkuSynthesizer] = None,
        *,
        max_sku_attempts: Optional[int] = None,
        max_combinations: Optional[int] = None,
    ):
        self.repository = repository
        self.attributes = attributes
        self.directory = directory
        self.templates = templates
        self.sku_synthesizer = sku_synthesizer or SkuSynthesizer(repository)
        self.max_sku_attempts = max_sku_attempts or settings.SKU_MAX_ATTEMPTS
        self.max_combinations = max_combinations or settings.MAX_VARIANT_COMBINATIONS

    # Queries

    async def get_variant(self, variant_id: UUID) -> VariantRead:
        variant = await self.repository.get(variant_id)
        if variant is None:
            raise NotFoundException("Product variant not found", code="VARIANT_NOT_FOUND")
        return variant

    async def get_variant_by_sku(self, sku: str) -> VariantRead:
        variant = await self.repository.get_by_sku(sku)
        if variant is None:
            raise NotFoundException("Product variant not found", code="VARIANT_NOT_FOUND")
        return variant

    async def list_variants(self, product_id: UUID) -> List[VariantRead]:
        """Default variant first, then by ``sort_order``."""
        return await self.repository.list_for_product(product_id)

    # Mutations

    async def create_variant(self, product_id: UUID, seller_id: str, data: VariantCreate) -> VariantRead:
        product = await require_product_access(self.directory, product_id, seller_id, "create variants")
        return await self._create_for_product(product, data)

    async def update_variant(self, variant_id: UUID, seller_id: str, changes: VariantUpdate) -> VariantRead:
        variant = await self.get_variant(variant_id)
        product = await require_product_access(self.directory, variant.product_id, seller_id, "update variants")

        updates: Dict[str, Any] = changes.model_dump(exclude_unset=True)
        attributes = updates.pop("attributes", None)
        is_default = updates.pop("is_default", None)
        updates = {
            k: v for k, v in updates.items()
            if not (k in _NOT_NULL_VARIANT_FIELDS and v is None)
        }
        if is_default is False and variant.is_default:
            raise ValidationException(
                "A product keeps one default variant; mark another variant as default instead",
                code="DEFAULT_VARIANT_REQUIRED",
            )

        self._check_pricing(
            updates.get("price", variant.price),
            updates["discount_price"] if "discount_price" in updates else variant.discount_price,
            updates.get("quantity", variant.quantity),
        )

        attribute_rows = None
        if attributes is not None:
            pairs = self._normalize_pairs(
                [VariantAttributePair(**item) for item in attributes]
            )
            siblings = [
                v for v in await self.repository.list_for_product(variant.product_id)
                if v.id != variant.id
            ]
            self._ensure_unique_combination(pairs, siblings)
            names = await self._attribute_names(product)
            attribute_rows = self._attribute_rows(pairs, names)

        updated = await self.repository.update(
            variant_id,
            updates,
            attribute_rows,
            make_default=bool(is_default),
        )
        logger.info(f"Product variant updated: {variant_id}")
        return updated

    async def delete_variant(self, variant_id: UUID, seller_id: str) -> bool:
        """Hard delete. The product's ``has_variants`` flag is left as it is,
        even when the last variant goes away."""
        variant = await self.get_variant(variant_id)
        await require_product_access(self.directory, variant.product_id, seller_id, "delete variants")

        result = await self.repository.delete(variant_id)
        if result:
            logger.info(f"Product variant deleted: {variant_id} - {variant.sku}")
        return result

    async def generate_variants_from_attributes(
        self,
        product_id: UUID,
        seller_id: str,
    ) -> VariantGenerationResult:
        product = await require_product_access(self.directory, product_id, seller_id, "generate variants")

        stored = await self.attributes.list_for_product(product_id)
        templates = await self.templates.list_templates_for_categories(product.category_ids)
        variant_keys = {t.key for t in templates if t.is_variant}
        names = {t.key: t.name for t in templates}

        combinations = generate_combinations(
            [FlaggedAttribute(a.key, a.value, a.key in variant_keys) for a in stored],
            max_combinations=self.max_combinations,
        )

        existing = await self.repository.list_for_product(product_id)
        next_sort = max((v.sort_order for v in existing), default=-1) + 1

        result = VariantGenerationResult()
        for index, combination in enumerate(combinations):
            data = VariantCreate(
                price=product.price,
                quantity=product.quantity,
                sort_order=next_sort + index,
                attributes=[VariantAttributePair(key=k, value=v) for k, v in combination.items()],
            )
            try:
                variant = await self._create_for_product(product, data, existing=existing, names=names)
            except CatalogException as exc:
                logger.warning(f"Failed to create variant for combination {combination}: {exc}")
                result.failed.append(
                    CombinationError(combination=combination, code=exc.code, message=str(exc.detail))
                )
                continue
            existing.append(variant)
            result.created.append(variant)

        logger.info(
            f"Generated {len(result.created)} variants for product {product_id} "
            f"({len(result.failed)} failed, {len(combinations)} combinations)"
        )
        return result

    # Helpers

    async def _create_for_product(
        self,
        product: ProductSnapshot,
        data: VariantCreate,
        *,
        existing: Optional[List[VariantRead]] = None,
        names: Optional[Dict[str, str]] = None,
    ) -> VariantRead:
        pairs = self._normalize_pairs(data.attributes)
        price = product.price if data.price is None else data.price
        quantity = product.quantity if data.quantity is None else data.quantity
        self._check_pricing(price, data.discount_price, quantity)

        if existing is None:
            existing = await self.repository.list_for_product(product.id)
        self._ensure_unique_combination(pairs, existing)

        if names is None:
            names = await self._attribute_names(product)

        make_default = data.is_default or not any(v.is_default for v in existing)
        sort_order = data.sort_order
        if sort_order is None:
            sort_order = max((v.sort_order for v in existing), default=-1) + 1

        values: Dict[str, Any] = {
            "name": data.name or f"{product.name} - {' / '.join(value for _, value in pairs)}",
            "price": price,
            "discount_price": data.discount_price,
            "quantity": quantity,
            "images": list(data.images),
            "weight": data.weight,
            "dimensions": data.dimensions.model_dump() if data.dimensions else None,
            "is_active": data.is_active,
            "is_default": make_default,
            "sort_order": sort_order,
        }
        attribute_rows = self._attribute_rows(pairs, names)

        for attempt in range(self.max_sku_attempts):
            sku = await self.sku_synthesizer.synthesize(product.name, pairs, force_suffix=attempt > 0)
            try:
                variant = await self.repository.create(
                    product.id,
                    {**values, "sku": sku},
                    attribute_rows,
                    make_default=make_default,
                )
            except DuplicateSkuError:
                logger.warning(
                    f"SKU collision on {sku} for product {product.id} "
                    f"(attempt {attempt + 1}/{self.max_sku_attempts})"
                )
                continue

            logger.info(f"Product variant created: {variant.id} - {variant.sku}")
            return variant

        raise ConflictException(
            "Could not generate a unique SKU for this variant",
            code="SKU_GENERATION_FAILED",
            metadata={"product_id": str(product.id), "attributes": dict(pairs)},
        )

    async def _attribute_names(self, product: ProductSnapshot) -> Dict[str, str]:
        templates = await self.templates.list_templates_for_categories(product.category_ids)
        return {t.key: t.name for t in templates}

    @staticmethod
    def _attribute_rows(pairs: Sequence[Pair], names: Dict[str, str]) -> List[Dict[str, Any]]:
        return [
            {"key": key, "name": names.get(key, key), "value": value, "position": position}
            for position, (key, value) in enumerate(pairs)
        ]

    @staticmethod
    def _normalize_pairs(attributes: Sequence[VariantAttributePair]) -> List[Pair]:
        if not attributes:
            raise ValidationException("Variant attributes are required", code="VARIANT_ATTRIBUTES_REQUIRED")

        pairs: List[Pair] = []
        seen = set()
        for attr in attributes:
            key = (attr.key or "").strip()
            value = (attr.value or "").strip()
            if not key or not value:
                raise ValidationException(
                    "Attribute key and value are required",
                    code="VARIANT_ATTRIBUTES_REQUIRED",
                )
            if key in seen:
                raise ValidationException(
                    f"Variant attribute '{key}' is given more than once",
                    code="DUPLICATE_ATTRIBUTE_KEY",
                )
            seen.add(key)
            pairs.append((key, value))
        return pairs

    @staticmethod
    def _ensure_unique_combination(pairs: Sequence[Pair], existing: Sequence[VariantRead]) -> None:
        wanted = dict(pairs)
        for variant in existing:
            if variant.combination() == wanted:
                raise ConflictException(
                    f"Variant {variant.sku} already has this attribute combination",
                    code="DUPLICATE_VARIANT_COMBINATION",
                    metadata={"variant_id": str(variant.id)},
                )

    @staticmethod
    def _check_pricing(price: Optional[float], discount_price: Optional[float], quantity: Optional[int]) -> None:
        if quantity is None or quantity < 0:
            raise ValidationException("Quantity cannot be negative", code="INVALID_QUANTITY")
        if price is None or price <= 0:
            raise ValidationException("Price must be greater than 0", code="INVALID_PRICE")
        if discount_price is not None:
            if discount_price <= 0:
                raise ValidationException(
                    "Discount price must be greater than 0",
                    code="INVALID_DISCOUNT_PRICE",
                )
            if discount_price >= price:
                raise ValidationException(
                    "Discount price must be less than regular price",
                    code="INVALID_DISCOUNT_PRICE",
                )
