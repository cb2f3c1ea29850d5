from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError

from variant_engine.core.exceptions import ConflictException, NotFoundException
from variant_engine.core.logging import get_logger
from variant_engine.models.attribute import (
    CategoryAttributeTemplate,
    CustomAttributeTemplate,
    ProductAttribute,
)
from variant_engine.models.product import product_categories
from variant_engine.repositories.base import SqlRepository
from variant_engine.schemas.attribute import AttributeTemplateRead, CustomAttributeTemplateRead

logger = get_logger(__name__)


def _key_conflict(key: Optional[str]) -> ConflictException:
    return ConflictException(
        "Attribute key already exists",
        code="ATTRIBUTE_KEY_EXISTS",
        metadata={"key": key},
    )


class SqlAttributeTemplateRepository(SqlRepository):
    async def key_exists(self, category_id: UUID, key: str) -> bool:
        async with self.transaction() as db:
            stmt = select(CategoryAttributeTemplate.id).where(
                CategoryAttributeTemplate.category_id == category_id,
                CategoryAttributeTemplate.key == key,
            ).limit(1)
            result = await db.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def create(self, category_id: UUID, values: Dict[str, Any]) -> AttributeTemplateRead:
        async with self.transaction() as db:
            template = CategoryAttributeTemplate(category_id=category_id, **values)
            db.add(template)
            try:
                await db.flush()
            except IntegrityError as e:
                # Lost a race against a concurrent create of the same key
                raise _key_conflict(values.get("key")) from e
            await db.refresh(template)
            return AttributeTemplateRead.model_validate(template)

    async def get(self, template_id: UUID) -> Optional[AttributeTemplateRead]:
        async with self.transaction() as db:
            template = await db.get(CategoryAttributeTemplate, template_id)
            return AttributeTemplateRead.model_validate(template) if template else None

    async def update(self, template_id: UUID, changes: Dict[str, Any]) -> AttributeTemplateRead:
        async with self.transaction() as db:
            template = await db.get(CategoryAttributeTemplate, template_id)
            if template is None:
                raise NotFoundException("Attribute template not found", code="TEMPLATE_NOT_FOUND")
            for field, value in changes.items():
                setattr(template, field, value)
            await db.flush()
            await db.refresh(template)
            return AttributeTemplateRead.model_validate(template)

    async def delete(self, template_id: UUID, *, cascade_product_attributes: bool = False) -> bool:
        async with self.transaction() as db:
            template = await db.get(CategoryAttributeTemplate, template_id)
            if template is None:
                return False

            if cascade_product_attributes:
                removed = await self._delete_product_attributes(db, template)
                logger.info(f"Removed {removed} product attributes with key '{template.key}'")

            await db.delete(template)
            return True

    async def list_for_categories(self, category_ids: Sequence[UUID]) -> List[AttributeTemplateRead]:
        if not category_ids:
            return []
        async with self.transaction() as db:
            stmt = (
                select(CategoryAttributeTemplate)
                .where(CategoryAttributeTemplate.category_id.in_(list(category_ids)))
                .order_by(CategoryAttributeTemplate.sort_order, CategoryAttributeTemplate.name)
            )
            result = await db.execute(stmt)
            return [AttributeTemplateRead.model_validate(row) for row in result.scalars().all()]

    @staticmethod
    async def _delete_product_attributes(db, template: CategoryAttributeTemplate) -> int:
        linked = select(product_categories.c.product_id).where(
            product_categories.c.category_id == template.category_id
        )
        # Products whose other categories still define the key keep their rows
        still_defined = (
            select(product_categories.c.product_id)
            .join(
                CategoryAttributeTemplate,
                and_(
                    CategoryAttributeTemplate.category_id == product_categories.c.category_id,
                    CategoryAttributeTemplate.key == template.key,
                ),
            )
            .where(product_categories.c.category_id != template.category_id)
        )
        stmt = (
            delete(ProductAttribute)
            .where(
                ProductAttribute.key == template.key,
                ProductAttribute.product_id.in_(linked),
                ProductAttribute.product_id.not_in(still_defined),
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0


class SqlCustomAttributeTemplateRepository(SqlRepository):
    async def get_by_key(self, seller_id: str, key: str) -> Optional[CustomAttributeTemplateRead]:
        """Looks at inactive templates too, so a deleted key can be revived."""
        async with self.transaction() as db:
            stmt = select(CustomAttributeTemplate).where(
                CustomAttributeTemplate.seller_id == seller_id,
                CustomAttributeTemplate.key == key,
            )
            result = await db.execute(stmt)
            template = result.scalar_one_or_none()
            return CustomAttributeTemplateRead.model_validate(template) if template else None

    async def create(self, seller_id: str, values: Dict[str, Any]) -> CustomAttributeTemplateRead:
        async with self.transaction() as db:
            template = CustomAttributeTemplate(seller_id=seller_id, **values)
            db.add(template)
            try:
                await db.flush()
            except IntegrityError as e:
                raise _key_conflict(values.get("key")) from e
            await db.refresh(template)
            return CustomAttributeTemplateRead.model_validate(template)

    async def get(self, template_id: UUID) -> Optional[CustomAttributeTemplateRead]:
        async with self.transaction() as db:
            template = await db.get(CustomAttributeTemplate, template_id)
            return CustomAttributeTemplateRead.model_validate(template) if template else None

    async def update(self, template_id: UUID, changes: Dict[str, Any]) -> CustomAttributeTemplateRead:
        async with self.transaction() as db:
            template = await db.get(CustomAttributeTemplate, template_id)
            if template is None:
                raise NotFoundException("Custom attribute template not found", code="TEMPLATE_NOT_FOUND")
            for field, value in changes.items():
                setattr(template, field, value)
            await db.flush()
            await db.refresh(template)
            return CustomAttributeTemplateRead.model_validate(template)

    async def list_active(self, seller_id: str) -> List[CustomAttributeTemplateRead]:
        async with self.transaction() as db:
            stmt = (
                select(CustomAttributeTemplate)
                .where(
                    CustomAttributeTemplate.seller_id == seller_id,
                    CustomAttributeTemplate.is_active.is_(True),
                )
                .order_by(CustomAttributeTemplate.sort_order, CustomAttributeTemplate.name)
            )
            result = await db.execute(stmt)
            return [CustomAttributeTemplateRead.model_validate(row) for row in result.scalars().all()]
