from variant_engine.repositories.product_attributes import SqlProductAttributeRepository
from variant_engine.repositories.products import SqlProductDirectory
from variant_engine.repositories.templates import (
    SqlAttributeTemplateRepository,
    SqlCustomAttributeTemplateRepository,
)
from variant_engine.repositories.variants import SqlVariantRepository

__all__ = [
    "SqlAttributeTemplateRepository",
    "SqlCustomAttributeTemplateRepository",
    "SqlProductAttributeRepository",
    "SqlProductDirectory",
    "SqlVariantRepository",
]
