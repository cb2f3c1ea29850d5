from .product import Category, Product, product_categories
from .attribute import (
    AttributeType,
    CategoryAttributeTemplate,
    CustomAttributeTemplate,
    ProductAttribute,
)
from .variant import ProductVariant, ProductVariantAttribute
