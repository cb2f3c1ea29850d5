from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from variant_engine.db.session import AsyncSessionLocal
from variant_engine.repositories import (
    SqlAttributeTemplateRepository,
    SqlCustomAttributeTemplateRepository,
    SqlProductAttributeRepository,
    SqlProductDirectory,
    SqlVariantRepository,
)
from variant_engine.services.catalog.attributes_service import ProductAttributeAssigner
from variant_engine.services.catalog.custom_attribute_registry import CustomAttributeRegistry
from variant_engine.services.catalog.sku import SkuSynthesizer
from variant_engine.services.catalog.template_registry import AttributeTemplateRegistry
from variant_engine.services.catalog.variant_store import VariantStore
from variant_engine.services.contracts import ProductDirectory


@dataclass
class CatalogEngine:
    templates: AttributeTemplateRegistry
    custom_templates: CustomAttributeRegistry
    attributes: ProductAttributeAssigner
    variants: VariantStore


def build_engine(
    session_factory: Optional[async_sessionmaker] = None,
    directory: Optional[ProductDirectory] = None,
) -> CatalogEngine:
    """Wire the services over the SQL repositories.

    Pass ``directory`` when the host platform answers product and ownership
    lookups itself.
    """
    session_factory = session_factory or AsyncSessionLocal
    directory = directory or SqlProductDirectory(session_factory)

    attribute_rows = SqlProductAttributeRepository(session_factory)
    variant_rows = SqlVariantRepository(session_factory)

    templates = AttributeTemplateRegistry(SqlAttributeTemplateRepository(session_factory), directory)
    custom_templates = CustomAttributeRegistry(SqlCustomAttributeTemplateRepository(session_factory), directory)

    return CatalogEngine(
        templates=templates,
        custom_templates=custom_templates,
        attributes=ProductAttributeAssigner(attribute_rows, directory, templates, custom_templates),
        variants=VariantStore(
            variant_rows,
            attribute_rows,
            directory,
            templates,
            SkuSynthesizer(variant_rows),
        ),
    )
