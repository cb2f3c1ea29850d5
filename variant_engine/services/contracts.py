from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from variant_engine.schemas.attribute import (
    AttributeTemplateRead,
    CustomAttributeTemplateRead,
    ProductAttributeRead,
)
from variant_engine.schemas.variant import VariantRead


@dataclass
class ProductSnapshot:
    id: UUID
    name: str
    price: float
    quantity: int
    seller_id: Optional[str] = None
    category_ids: List[UUID] = field(default_factory=list)


class ProductDirectory(Protocol):
    """Product, category and ownership lookups owned by the surrounding platform."""

    async def is_product_owner(self, product_id: UUID, seller_id: str) -> bool:
        ...

    async def is_admin(self, caller_id: str) -> bool:
        ...

    async def get_product(self, product_id: UUID) -> Optional[ProductSnapshot]:
        ...

    async def category_exists(self, category_id: UUID) -> bool:
        ...


class AttributeTemplateRepository(Protocol):
    async def key_exists(self, category_id: UUID, key: str) -> bool:
        ...

    async def create(self, category_id: UUID, values: Dict[str, Any]) -> AttributeTemplateRead:
        ...

    async def get(self, template_id: UUID) -> Optional[AttributeTemplateRead]:
        ...

    async def update(self, template_id: UUID, changes: Dict[str, Any]) -> AttributeTemplateRead:
        ...

    async def delete(self, template_id: UUID, *, cascade_product_attributes: bool = False) -> bool:
        ...

    async def list_for_categories(self, category_ids: Sequence[UUID]) -> List[AttributeTemplateRead]:
        ...


class CustomAttributeTemplateRepository(Protocol):
    async def get_by_key(self, seller_id: str, key: str) -> Optional[CustomAttributeTemplateRead]:
        ...

    async def create(self, seller_id: str, values: Dict[str, Any]) -> CustomAttributeTemplateRead:
        ...

    async def get(self, template_id: UUID) -> Optional[CustomAttributeTemplateRead]:
        ...

    async def update(self, template_id: UUID, changes: Dict[str, Any]) -> CustomAttributeTemplateRead:
        ...

    async def list_active(self, seller_id: str) -> List[CustomAttributeTemplateRead]:
        ...


class ProductAttributeRepository(Protocol):
    async def list_for_product(self, product_id: UUID) -> List[ProductAttributeRead]:
        ...

    async def replace_for_product(
        self,
        product_id: UUID,
        rows: Sequence[Dict[str, Any]],
    ) -> List[ProductAttributeRead]:
        """Delete every row of the product and insert ``rows`` in one transaction."""
        ...

    async def delete_key(self, product_id: UUID, key: str) -> int:
        ...

    async def update_snapshots(
        self,
        product_id: UUID,
        snapshots: Dict[str, Dict[str, Any]],
    ) -> List[ProductAttributeRead]:
        ...


class VariantRepository(Protocol):
    async def sku_exists(self, sku: str) -> bool:
        ...

    async def get(self, variant_id: UUID) -> Optional[VariantRead]:
        ...

    async def get_by_sku(self, sku: str) -> Optional[VariantRead]:
        ...

    async def list_for_product(self, product_id: UUID) -> List[VariantRead]:
        ...

    async def create(
        self,
        product_id: UUID,
        values: Dict[str, Any],
        attributes: Sequence[Dict[str, Any]],
        *,
        make_default: bool = False,
    ) -> VariantRead:
        """Insert variant, its attribute rows and flag the product in one transaction.

        Raises ``DuplicateSkuError`` when the SKU unique constraint rejects the insert.
        """
        ...

    async def update(
        self,
        variant_id: UUID,
        changes: Dict[str, Any],
        attributes: Optional[Sequence[Dict[str, Any]]] = None,
        *,
        make_default: bool = False,
    ) -> VariantRead:
        ...

    async def delete(self, variant_id: UUID) -> bool:
        ...
