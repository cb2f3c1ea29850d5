from __future__ import annotations

from typing import Any, Dict, List, Sequence, Set, Tuple, Union
from uuid import UUID

from variant_engine.core.exceptions import NotFoundException, ValidationException
from variant_engine.core.logging import get_logger
from variant_engine.schemas.attribute import (
    AttributeReconcileReport,
    AttributeTemplateRead,
    CustomAttributeTemplateRead,
    ProductAttributeInput,
    ProductAttributeRead,
)
from variant_engine.services.catalog.access import require_product_access
from variant_engine.services.catalog.attribute_values import check_attribute_value
from variant_engine.services.catalog.custom_attribute_registry import CustomAttributeRegistry
from variant_engine.services.catalog.template_registry import AttributeTemplateRegistry
from variant_engine.services.contracts import (
    ProductAttributeRepository,
    ProductDirectory,
    ProductSnapshot,
)

logger = get_logger(__name__)

AnyTemplate = Union[AttributeTemplateRead, CustomAttributeTemplateRead]


class ProductAttributeAssigner:
    """Validates and replaces the attribute values carried by one product.

    Applicable templates are the union of the templates of every category
    linked to the product and the seller's active custom templates; a category
    template wins when both define the same key.
    """

    def __init__(
        self,
        repository: ProductAttributeRepository,
        directory: ProductDirectory,
        templates: AttributeTemplateRegistry,
        custom_templates: CustomAttributeRegistry,
    ):
        self.repository = repository
        self.directory = directory
        self.templates = templates
        self.custom_templates = custom_templates

    async def applicable_templates(
        self,
        product: ProductSnapshot,
        seller_id: str,
    ) -> Dict[str, AnyTemplate]:
        resolved: Dict[str, AnyTemplate] = {}
        for template in await self.templates.list_templates_for_categories(product.category_ids):
            resolved.setdefault(template.key, template)
        # Custom templates belong to the product owner, not to an admin acting on it
        owner_id = product.seller_id or seller_id
        for template in await self.custom_templates.list_templates(owner_id):
            resolved.setdefault(template.key, template)
        return resolved

    async def set_attributes(
        self,
        product_id: UUID,
        seller_id: str,
        attributes: Sequence[ProductAttributeInput],
    ) -> List[ProductAttributeRead]:
        """Replace the product's attribute set with ``attributes``.

        Everything is validated before the delete-then-insert runs, so a
        rejected call leaves the stored rows untouched. Two concurrent calls for
        the same product are last-writer-wins.
        """
        product = await require_product_access(self.directory, product_id, seller_id, "set attributes")
        templates = await self.applicable_templates(product, seller_id)

        rows = self._build_rows(attributes, templates)
        self._check_required(rows, templates)

        stored = await self.repository.replace_for_product(product_id, rows)
        logger.info(f"Product attributes set: {product_id} - {len(stored)} attributes")
        return stored

    async def get_attributes(self, product_id: UUID) -> List[ProductAttributeRead]:
        if await self.directory.get_product(product_id) is None:
            raise NotFoundException("Product not found", code="PRODUCT_NOT_FOUND")
        return await self.repository.list_for_product(product_id)

    async def remove_attribute(self, product_id: UUID, seller_id: str, key: str) -> int:
        product = await require_product_access(self.directory, product_id, seller_id, "remove attributes")
        templates = await self.applicable_templates(product, seller_id)
        template = templates.get(key)
        if isinstance(template, AttributeTemplateRead) and template.is_required:
            raise ValidationException(
                f"Attribute '{key}' is required for this product",
                code="MISSING_REQUIRED_ATTRIBUTE",
            )

        removed = await self.repository.delete_key(product_id, key)
        if not removed:
            raise NotFoundException("Product attribute not found", code="ATTRIBUTE_NOT_FOUND")
        logger.info(f"Product attribute removed: {product_id} - {key} ({removed} rows)")
        return removed

    async def reconcile_attributes(self, product_id: UUID, seller_id: str) -> AttributeReconcileReport:
        """Re-sync the name/type snapshot of each stored row with its current template.

        Rows whose key no longer has a template are reported as orphaned and kept.
        """
        product = await require_product_access(self.directory, product_id, seller_id, "reconcile attributes")
        templates = await self.applicable_templates(product, seller_id)
        current = await self.repository.list_for_product(product_id)

        snapshots: Dict[str, Dict[str, Any]] = {}
        orphaned: List[str] = []
        for row in current:
            if row.key in snapshots or row.key in orphaned:
                continue
            template = templates.get(row.key)
            if template is None:
                orphaned.append(row.key)
                continue
            stale = [
                r for r in current
                if r.key == row.key and (r.name != template.name or r.type != template.type)
            ]
            if stale:
                snapshots[row.key] = {"name": template.name, "type": template.type}

        stored = current
        if snapshots:
            stored = await self.repository.update_snapshots(product_id, snapshots)
            logger.info(f"Product attributes reconciled: {product_id} - {sorted(snapshots)}")
        if orphaned:
            logger.warning(f"Product {product_id} has attributes without a template: {orphaned}")

        return AttributeReconcileReport(
            updated=sorted(snapshots),
            orphaned=orphaned,
            attributes=stored,
        )

    @staticmethod
    def _build_rows(
        attributes: Sequence[ProductAttributeInput],
        templates: Dict[str, AnyTemplate],
    ) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        seen_pairs: Set[Tuple[str, str]] = set()
        seen_keys: Set[str] = set()

        for attr in attributes:
            key = (attr.key or "").strip()
            value = (attr.value or "").strip()
            if not key:
                raise ValidationException("Attribute key is required", code="ATTRIBUTE_KEY_REQUIRED")
            if not value:
                raise ValidationException(
                    f"Attribute '{key}' requires a value",
                    code="ATTRIBUTE_VALUE_REQUIRED",
                )

            template = templates.get(key)
            if template is None:
                raise ValidationException(
                    f"Invalid attribute key: {key}",
                    code="INVALID_ATTRIBUTE_KEY",
                    metadata={"key": key},
                )

            problem = check_attribute_value(template.type, value, template.options)
            if problem:
                raise ValidationException(
                    f"Invalid value for '{key}': {problem}",
                    code="INVALID_ATTRIBUTE_VALUE",
                    metadata={"key": key, "value": value},
                )

            if (key, value) in seen_pairs:
                continue
            if key in seen_keys and not template.is_variant:
                raise ValidationException(
                    f"Attribute '{key}' accepts a single value",
                    code="DUPLICATE_ATTRIBUTE_KEY",
                    metadata={"key": key},
                )
            seen_pairs.add((key, value))
            seen_keys.add(key)

            rows.append(
                {
                    "key": key,
                    "name": template.name,
                    "value": value,
                    "type": template.type,
                    "unit": attr.unit or template.unit,
                }
            )
        return rows

    @staticmethod
    def _check_required(rows: List[Dict[str, Any]], templates: Dict[str, AnyTemplate]) -> None:
        present = {row["key"] for row in rows}
        missing = [
            key for key, template in templates.items()
            if isinstance(template, AttributeTemplateRead) and template.is_required and key not in present
        ]
        if missing:
            raise ValidationException(
                f"Missing required attributes: {', '.join(missing)}",
                code="MISSING_REQUIRED_ATTRIBUTE",
                metadata={"keys": missing},
            )
