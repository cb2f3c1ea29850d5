from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from variant_engine.core.exceptions import DuplicateSkuError, NotFoundException
from variant_engine.core.logging import get_logger
from variant_engine.models.product import Product
from variant_engine.models.variant import ProductVariant, ProductVariantAttribute
from variant_engine.repositories.base import SqlRepository
from variant_engine.schemas.variant import VariantRead

logger = get_logger(__name__)

SKU_CONSTRAINT = "uq_product_variants_sku"


class SqlVariantRepository(SqlRepository):
    """Variant rows plus their attribute rows.

    Mutations lock the owning product row first so default-flag changes for
    one product never interleave.
    """

    async def sku_exists(self, sku: str) -> bool:
        async with self.transaction() as db:
            stmt = select(ProductVariant.id).where(ProductVariant.sku == sku).limit(1)
            result = await db.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def get(self, variant_id: UUID) -> Optional[VariantRead]:
        async with self.transaction() as db:
            return await self._load(db, ProductVariant.id == variant_id)

    async def get_by_sku(self, sku: str) -> Optional[VariantRead]:
        async with self.transaction() as db:
            return await self._load(db, ProductVariant.sku == sku)

    async def list_for_product(self, product_id: UUID) -> List[VariantRead]:
        async with self.transaction() as db:
            stmt = (
                select(ProductVariant)
                .options(selectinload(ProductVariant.attributes))
                .where(ProductVariant.product_id == product_id)
                .order_by(
                    ProductVariant.is_default.desc(),
                    ProductVariant.sort_order,
                    ProductVariant.created_at,
                )
            )
            result = await db.execute(stmt)
            return [VariantRead.model_validate(row) for row in result.scalars().all()]

    async def create(
        self,
        product_id: UUID,
        values: Dict[str, Any],
        attributes: Sequence[Dict[str, Any]],
        *,
        make_default: bool = False,
    ) -> VariantRead:
        async with self.transaction() as db:
            await self._lock_product(db, product_id)

            if make_default:
                await self._clear_default(db, product_id)
            is_default = make_default or not await self._has_default(db, product_id)

            variant = ProductVariant(
                product_id=product_id,
                **{**values, "is_default": is_default},
            )
            variant.attributes = [ProductVariantAttribute(**row) for row in attributes]
            db.add(variant)

            await db.execute(
                update(Product).where(Product.id == product_id).values(has_variants=True)
            )
            await self._flush(db, values["sku"])
            return await self._load(db, ProductVariant.id == variant.id)

    async def update(
        self,
        variant_id: UUID,
        changes: Dict[str, Any],
        attributes: Optional[Sequence[Dict[str, Any]]] = None,
        *,
        make_default: bool = False,
    ) -> VariantRead:
        async with self.transaction() as db:
            variant = await db.get(ProductVariant, variant_id)
            if variant is None:
                raise NotFoundException("Product variant not found", code="VARIANT_NOT_FOUND")
            await self._lock_product(db, variant.product_id)

            if make_default and not variant.is_default:
                await self._clear_default(db, variant.product_id)
                variant.is_default = True
            for field, value in changes.items():
                setattr(variant, field, value)

            if attributes is not None:
                # Old rows go first; the (variant_id, key) constraint would reject an overlap
                await db.execute(
                    delete(ProductVariantAttribute)
                    .where(ProductVariantAttribute.variant_id == variant_id)
                    .execution_options(synchronize_session=False)
                )
                db.add_all(ProductVariantAttribute(variant_id=variant_id, **row) for row in attributes)

            await self._flush(db, changes.get("sku", variant.sku))
            return await self._load(db, ProductVariant.id == variant_id)

    async def delete(self, variant_id: UUID) -> bool:
        async with self.transaction() as db:
            variant = await db.get(ProductVariant, variant_id)
            if variant is None:
                return False
            product_id = variant.product_id
            was_default = variant.is_default
            await self._lock_product(db, product_id)

            await db.delete(variant)
            await db.flush()

            if was_default:
                await self._promote_default(db, product_id)
            return True

    @staticmethod
    async def _load(db, condition) -> Optional[VariantRead]:
        stmt = (
            select(ProductVariant)
            .options(selectinload(ProductVariant.attributes))
            .where(condition)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        variant = result.scalar_one_or_none()
        return VariantRead.model_validate(variant) if variant else None

    @staticmethod
    async def _flush(db, sku: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            if SKU_CONSTRAINT in str(e.orig):
                raise DuplicateSkuError(sku) from e
            raise

    @staticmethod
    async def _lock_product(db, product_id: UUID) -> None:
        await db.execute(select(Product.id).where(Product.id == product_id).with_for_update())

    @staticmethod
    async def _has_default(db, product_id: UUID) -> bool:
        stmt = select(ProductVariant.id).where(
            ProductVariant.product_id == product_id,
            ProductVariant.is_default.is_(True),
        ).limit(1)
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _clear_default(db, product_id: UUID) -> None:
        await db.execute(
            update(ProductVariant)
            .where(ProductVariant.product_id == product_id, ProductVariant.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def _promote_default(db, product_id: UUID) -> None:
        stmt = (
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.sort_order, ProductVariant.created_at)
            .limit(1)
        )
        result = await db.execute(stmt)
        successor = result.scalar_one_or_none()
        if successor is not None:
            successor.is_default = True
            logger.info(f"Variant {successor.id} promoted to default for product {product_id}")
