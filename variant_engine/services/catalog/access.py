from uuid import UUID

from variant_engine.core.exceptions import ForbiddenException, NotFoundException
from variant_engine.services.contracts import ProductDirectory, ProductSnapshot


async def require_product_access(
    directory: ProductDirectory,
    product_id: UUID,
    seller_id: str,
    action: str,
) -> ProductSnapshot:
    """Load the product and make sure ``seller_id`` owns it or is an admin."""
    product = await directory.get_product(product_id)
    if product is None:
        raise NotFoundException("Product not found", code="PRODUCT_NOT_FOUND")

    if await directory.is_product_owner(product_id, seller_id):
        return product
    if await directory.is_admin(seller_id):
        return product
    raise ForbiddenException(f"You can only {action} for your own products")
