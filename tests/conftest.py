from types import SimpleNamespace

import pytest

from variant_engine.models.attribute import AttributeType
from variant_engine.services.catalog.attributes_service import ProductAttributeAssigner
from variant_engine.services.catalog.custom_attribute_registry import CustomAttributeRegistry
from variant_engine.services.catalog.sku import SkuSynthesizer
from variant_engine.services.catalog.template_registry import AttributeTemplateRegistry
from variant_engine.services.catalog.variant_store import VariantStore
from tests.fakes import (
    FakeAttributeTemplateRepository,
    FakeCustomAttributeTemplateRepository,
    FakeProductAttributeRepository,
    FakeProductDirectory,
    FakeVariantRepository,
    seed_template,
)

ADMIN_ID = "admin-1"


@pytest.fixture
def directory():
    return FakeProductDirectory(admin_ids=[ADMIN_ID])


@pytest.fixture
def attribute_rows():
    return FakeProductAttributeRepository()


@pytest.fixture
def template_rows(directory, attribute_rows):
    return FakeAttributeTemplateRepository(directory, attribute_rows)


@pytest.fixture
def custom_rows():
    return FakeCustomAttributeTemplateRepository()


@pytest.fixture
def variant_rows():
    return FakeVariantRepository()


@pytest.fixture
def templates(template_rows, directory):
    return AttributeTemplateRegistry(template_rows, directory, delete_policy="retain")


@pytest.fixture
def custom_templates(custom_rows, directory):
    return CustomAttributeRegistry(custom_rows, directory)


@pytest.fixture
def assigner(attribute_rows, directory, templates, custom_templates):
    return ProductAttributeAssigner(attribute_rows, directory, templates, custom_templates)


@pytest.fixture
def store(variant_rows, attribute_rows, directory, templates):
    return VariantStore(
        variant_rows,
        attribute_rows,
        directory,
        templates,
        SkuSynthesizer(variant_rows),
        max_sku_attempts=3,
        max_combinations=500,
    )


@pytest.fixture
def apparel(directory, template_rows):
    """A clothing category with Size/Color variant templates and a product in it."""
    category_id = directory.add_category()
    size = seed_template(
        template_rows,
        category_id,
        "Size",
        AttributeType.SELECT,
        options=["S", "M", "L", "XL"],
        is_variant=True,
        sort_order=0,
    )
    color = seed_template(
        template_rows,
        category_id,
        "Color",
        AttributeType.SELECT,
        options=["Red", "Blue", "Green"],
        is_variant=True,
        sort_order=1,
    )
    material = seed_template(template_rows, category_id, "Material", sort_order=2)
    weight = seed_template(template_rows, category_id, "Weight", AttributeType.NUMBER, unit="g", sort_order=3)
    product = directory.add_product(category_ids=[category_id])
    return SimpleNamespace(
        category_id=category_id,
        product=product,
        size=size,
        color=color,
        material=material,
        weight=weight,
    )
