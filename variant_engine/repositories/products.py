from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from variant_engine.core.config import settings
from variant_engine.models.product import Category, Product
from variant_engine.repositories.base import SqlRepository
from variant_engine.services.contracts import ProductSnapshot


class SqlProductDirectory(SqlRepository):
    """Reads the platform's product and category tables."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        admin_ids: Optional[Iterable[str]] = None,
    ):
        super().__init__(session_factory)
        self.admin_ids = set(settings.admin_ids if admin_ids is None else admin_ids)

    async def is_product_owner(self, product_id: UUID, seller_id: str) -> bool:
        async with self.transaction() as db:
            stmt = select(Product.id).where(Product.id == product_id, Product.seller_id == seller_id)
            result = await db.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def is_admin(self, caller_id: str) -> bool:
        return caller_id in self.admin_ids

    async def get_product(self, product_id: UUID) -> Optional[ProductSnapshot]:
        async with self.transaction() as db:
            stmt = select(Product).options(selectinload(Product.categories)).where(Product.id == product_id)
            result = await db.execute(stmt)
            product = result.scalar_one_or_none()
            if product is None:
                return None
            return ProductSnapshot(
                id=product.id,
                name=product.name,
                price=product.price,
                quantity=product.quantity,
                seller_id=product.seller_id,
                category_ids=[category.id for category in product.categories],
            )

    async def category_exists(self, category_id: UUID) -> bool:
        async with self.transaction() as db:
            result = await db.execute(select(Category.id).where(Category.id == category_id))
            return result.scalar_one_or_none() is not None
