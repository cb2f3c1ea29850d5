from datetime import datetime
from typing import Any, Dict, List, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update

from variant_engine.models.attribute import ProductAttribute
from variant_engine.models.product import Product
from variant_engine.repositories.base import SqlRepository
from variant_engine.schemas.attribute import ProductAttributeRead


class SqlProductAttributeRepository(SqlRepository):
    async def list_for_product(self, product_id: UUID) -> List[ProductAttributeRead]:
        async with self.transaction() as db:
            return await self._list(db, product_id)

    async def replace_for_product(
        self,
        product_id: UUID,
        rows: Sequence[Dict[str, Any]],
    ) -> List[ProductAttributeRead]:
        async with self.transaction() as db:
            # Serializes concurrent replaces of one product; the later commit wins
            await db.execute(select(Product.id).where(Product.id == product_id).with_for_update())

            await db.execute(
                delete(ProductAttribute)
                .where(ProductAttribute.product_id == product_id)
                .execution_options(synchronize_session=False)
            )
            db.add_all(
                ProductAttribute(product_id=product_id, position=position, **row)
                for position, row in enumerate(rows)
            )
            await db.flush()
            return await self._list(db, product_id)

    async def delete_key(self, product_id: UUID, key: str) -> int:
        async with self.transaction() as db:
            result = await db.execute(
                delete(ProductAttribute)
                .where(ProductAttribute.product_id == product_id, ProductAttribute.key == key)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def update_snapshots(
        self,
        product_id: UUID,
        snapshots: Dict[str, Dict[str, Any]],
    ) -> List[ProductAttributeRead]:
        async with self.transaction() as db:
            for key, values in snapshots.items():
                await db.execute(
                    update(ProductAttribute)
                    .where(ProductAttribute.product_id == product_id, ProductAttribute.key == key)
                    .values(**values, updated_at=datetime.utcnow())
                    .execution_options(synchronize_session=False)
                )
            return await self._list(db, product_id)

    @staticmethod
    async def _list(db, product_id: UUID) -> List[ProductAttributeRead]:
        stmt = (
            select(ProductAttribute)
            .where(ProductAttribute.product_id == product_id)
            .order_by(ProductAttribute.position, ProductAttribute.created_at)
        )
        result = await db.execute(stmt)
        return [ProductAttributeRead.model_validate(row) for row in result.scalars().all()]
