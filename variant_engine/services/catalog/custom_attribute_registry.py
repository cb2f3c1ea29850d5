from __future__ import annotations

from typing import List
from uuid import UUID

from variant_engine.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from variant_engine.core.logging import get_logger
from variant_engine.schemas.attribute import (
    CustomAttributeTemplateCreate,
    CustomAttributeTemplateRead,
    CustomAttributeTemplateUpdate,
)
from variant_engine.services.catalog.template_registry import (
    clean_template_changes,
    derive_key_or_fail,
    ensure_options,
)
from variant_engine.services.contracts import CustomAttributeTemplateRepository, ProductDirectory

logger = get_logger(__name__)


class CustomAttributeRegistry:
    """Seller-scoped attribute templates.

    Deletion is soft (``is_active=False``) so product attributes that were
    assigned from a template stay interpretable. A deleted key can be created
    again: the inactive row is revived with the new definition.
    """

    def __init__(self, repository: CustomAttributeTemplateRepository, directory: ProductDirectory):
        self.repository = repository
        self.directory = directory

    async def create_template(
        self,
        seller_id: str,
        definition: CustomAttributeTemplateCreate,
    ) -> CustomAttributeTemplateRead:
        key = derive_key_or_fail(definition.name)
        ensure_options(definition.type, definition.options)

        values = definition.model_dump()
        existing = await self.repository.get_by_key(seller_id, key)
        if existing is not None and existing.is_active:
            raise ConflictException(
                "Custom attribute key already exists",
                code="ATTRIBUTE_KEY_EXISTS",
                metadata={"key": key},
            )

        if existing is not None:
            template = await self.repository.update(existing.id, {**values, "is_active": True})
            logger.info(f"Custom attribute template revived: {template.id} - {template.name}")
            return template

        values["key"] = key
        template = await self.repository.create(seller_id, values)
        logger.info(f"Custom attribute template created: {template.id} - {template.name}")
        return template

    async def update_template(
        self,
        template_id: UUID,
        seller_id: str,
        changes: CustomAttributeTemplateUpdate,
    ) -> CustomAttributeTemplateRead:
        current = await self._get_owned(template_id, seller_id)

        updates = clean_template_changes(changes.model_dump(exclude_unset=True))
        effective_type = updates.get("type") or current.type
        effective_options = updates["options"] if updates.get("options") is not None else current.options
        ensure_options(effective_type, effective_options)

        if not updates:
            return current

        template = await self.repository.update(template_id, updates)
        logger.info(f"Custom attribute template updated: {template_id}")
        return template

    async def delete_template(self, template_id: UUID, seller_id: str) -> bool:
        await self._get_owned(template_id, seller_id)
        await self.repository.update(template_id, {"is_active": False})
        logger.info(f"Custom attribute template deactivated: {template_id}")
        return True

    async def list_templates(self, seller_id: str) -> List[CustomAttributeTemplateRead]:
        return await self.repository.list_active(seller_id)

    async def _get_owned(self, template_id: UUID, seller_id: str) -> CustomAttributeTemplateRead:
        template = await self.repository.get(template_id)
        if template is None or not template.is_active:
            raise NotFoundException("Custom attribute template not found", code="TEMPLATE_NOT_FOUND")
        if template.seller_id != seller_id and not await self.directory.is_admin(seller_id):
            raise ForbiddenException("You can only manage your own attribute templates")
        return template
