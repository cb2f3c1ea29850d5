from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from variant_engine.core.config import settings
from variant_engine.core.exceptions import ConflictException, NotFoundException, ValidationException
from variant_engine.core.logging import get_logger
from variant_engine.models.attribute import OPTION_TYPES, AttributeType
from variant_engine.schemas.attribute import (
    AttributeTemplateCreate,
    AttributeTemplateRead,
    AttributeTemplateUpdate,
)
from variant_engine.services.contracts import AttributeTemplateRepository, ProductDirectory

logger = get_logger(__name__)

_NON_KEY_CHARS = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


def generate_attribute_key(name: str) -> str:
    """Derive the stable attribute key from a display name ("Screen Size (in)" -> "screen_size_in")."""
    key = _NON_KEY_CHARS.sub("_", (name or "").lower())
    key = _REPEATED_UNDERSCORES.sub("_", key)
    return key.strip("_")


def derive_key_or_fail(name: str) -> str:
    key = generate_attribute_key(name)
    if not key:
        raise ValidationException(
            "Attribute name must contain at least one letter or digit",
            code="INVALID_ATTRIBUTE_NAME",
        )
    return key


def ensure_options(attr_type: Optional[AttributeType], options: Optional[Sequence[str]]) -> None:
    if attr_type in OPTION_TYPES and not [o for o in (options or []) if str(o).strip()]:
        raise ValidationException(
            "Options are required for SELECT type attributes",
            code="OPTIONS_REQUIRED",
        )


_NOT_NULL_FIELDS = ("name", "type", "is_required", "is_variant", "options", "sort_order")


def clean_template_changes(updates: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in updates.items() if not (k in _NOT_NULL_FIELDS and v is None)}
    if "name" in cleaned and not str(cleaned["name"]).strip():
        raise ValidationException("Attribute name cannot be empty", code="INVALID_ATTRIBUTE_NAME")
    return cleaned


class AttributeTemplateRegistry:
    """Category-scoped attribute schema definitions."""

    def __init__(
        self,
        repository: AttributeTemplateRepository,
        directory: ProductDirectory,
        *,
        delete_policy: Optional[str] = None,
    ):
        self.repository = repository
        self.directory = directory
        self.delete_policy = (delete_policy or settings.TEMPLATE_DELETE_POLICY).lower()

    async def create_template(
        self,
        category_id: UUID,
        definition: AttributeTemplateCreate,
    ) -> AttributeTemplateRead:
        if not await self.directory.category_exists(category_id):
            raise NotFoundException("Category not found", code="CATEGORY_NOT_FOUND")

        key = derive_key_or_fail(definition.name)
        ensure_options(definition.type, definition.options)

        if await self.repository.key_exists(category_id, key):
            raise ConflictException(
                "Attribute key already exists for this category",
                code="ATTRIBUTE_KEY_EXISTS",
                metadata={"key": key},
            )

        values = definition.model_dump()
        values["key"] = key
        template = await self.repository.create(category_id, values)

        logger.info(f"Category attribute template created: {template.id} - {template.name}")
        return template

    async def update_template(
        self,
        template_id: UUID,
        changes: AttributeTemplateUpdate,
    ) -> AttributeTemplateRead:
        current = await self.get_template(template_id)

        updates = clean_template_changes(changes.model_dump(exclude_unset=True))
        effective_type = updates.get("type") or current.type
        effective_options = updates["options"] if updates.get("options") is not None else current.options
        ensure_options(effective_type, effective_options)

        if not updates:
            return current

        template = await self.repository.update(template_id, updates)
        logger.info(f"Category attribute template updated: {template_id}")
        return template

    async def delete_template(self, template_id: UUID) -> bool:
        await self.get_template(template_id)

        cascade = self.delete_policy == "cascade"
        result = await self.repository.delete(template_id, cascade_product_attributes=cascade)
        if result:
            logger.info(f"Category attribute template deleted: {template_id} (policy={self.delete_policy})")
        return result

    async def get_template(self, template_id: UUID) -> AttributeTemplateRead:
        template = await self.repository.get(template_id)
        if template is None:
            raise NotFoundException("Attribute template not found", code="TEMPLATE_NOT_FOUND")
        return template

    async def list_templates(self, category_id: UUID) -> List[AttributeTemplateRead]:
        return await self.repository.list_for_categories([category_id])

    async def list_templates_for_categories(
        self,
        category_ids: Sequence[UUID],
    ) -> List[AttributeTemplateRead]:
        if not category_ids:
            return []
        return await self.repository.list_for_categories(list(category_ids))
