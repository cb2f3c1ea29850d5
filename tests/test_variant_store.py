import itertools
from uuid import uuid4

import pytest

pytest.importorskip("sqlalchemy")
pytest.importorskip("pydantic_settings")

from variant_engine.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from variant_engine.models.attribute import AttributeType
from variant_engine.schemas.attribute import ProductAttributeInput
from variant_engine.schemas.variant import VariantAttributePair, VariantCreate, VariantUpdate
from variant_engine.services.catalog.sku import SkuSynthesizer
from variant_engine.services.catalog.variant_store import VariantStore
from tests.conftest import ADMIN_ID
from tests.fakes import seed_template


def _variant(*pairs, **fields) -> VariantCreate:
    return VariantCreate(
        attributes=[VariantAttributePair(key=k, value=v) for k, v in pairs],
        **fields,
    )


async def _set(assigner, product, *pairs):
    await assigner.set_attributes(
        product.id,
        product.seller_id,
        [ProductAttributeInput(key=k, value=v) for k, v in pairs],
    )


@pytest.mark.asyncio
async def test_create_variant_defaults(store, apparel, variant_rows) -> None:
    variant = await store.create_variant(
        apparel.product.id,
        "seller-1",
        _variant(("size", "M"), ("color", "Red")),
    )

    assert variant.sku == "cotton-t-s-sizm-colred"
    assert variant.name == "Cotton T-Shirt - M / Red"
    assert variant.price == 25.0
    assert variant.quantity == 10
    assert variant.is_default is True
    assert variant.sort_order == 0
    assert [(a.key, a.name, a.value) for a in variant.attributes] == [
        ("size", "Size", "M"),
        ("color", "Color", "Red"),
    ]
    assert apparel.product.id in variant_rows.products_with_variants


@pytest.mark.asyncio
async def test_create_variant_keeps_explicit_fields(store, apparel) -> None:
    variant = await store.create_variant(
        apparel.product.id,
        "seller-1",
        _variant(
            ("size", "L"),
            ("pattern", "Striped"),
            name="Striped Large",
            price=30.0,
            discount_price=24.0,
            quantity=0,
            sort_order=7,
            dimensions={"length": 70, "width": 50, "height": 1},
        ),
    )

    assert variant.name == "Striped Large"
    assert variant.price == 30.0
    assert variant.discount_price == 24.0
    assert variant.quantity == 0
    assert variant.sort_order == 7
    assert variant.dimensions.unit == "cm"
    # No template for the key, so the key doubles as the display name
    assert variant.attributes[1].name == "pattern"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data,code",
    [
        (_variant(("size", "M"), price=0), "INVALID_PRICE"),
        (_variant(("size", "M"), quantity=-1), "INVALID_QUANTITY"),
        (_variant(("size", "M"), price=20.0, discount_price=20.0), "INVALID_DISCOUNT_PRICE"),
        (_variant(("size", "M"), discount_price=0), "INVALID_DISCOUNT_PRICE"),
        (_variant(), "VARIANT_ATTRIBUTES_REQUIRED"),
        (_variant(("size", " ")), "VARIANT_ATTRIBUTES_REQUIRED"),
        (_variant(("size", "M"), ("size", "L")), "DUPLICATE_ATTRIBUTE_KEY"),
    ],
)
async def test_create_variant_validation(store, apparel, variant_rows, data, code) -> None:
    with pytest.raises(ValidationException) as exc:
        await store.create_variant(apparel.product.id, "seller-1", data)

    assert exc.value.code == code
    assert variant_rows.variants == {}


@pytest.mark.asyncio
async def test_duplicate_combination_conflicts(store, apparel) -> None:
    await store.create_variant(apparel.product.id, "seller-1", _variant(("size", "M"), ("color", "Red")))

    with pytest.raises(ConflictException) as exc:
        await store.create_variant(
            apparel.product.id,
            "seller-1",
            _variant(("color", "Red"), ("size", "M"), price=40.0),
        )

    assert exc.value.code == "DUPLICATE_VARIANT_COMBINATION"


@pytest.mark.asyncio
async def test_access_rules(store, apparel) -> None:
    with pytest.raises(NotFoundException):
        await store.create_variant(uuid4(), "seller-1", _variant(("size", "M")))
    with pytest.raises(ForbiddenException):
        await store.create_variant(apparel.product.id, "seller-2", _variant(("size", "M")))

    variant = await store.create_variant(apparel.product.id, ADMIN_ID, _variant(("size", "M")))
    with pytest.raises(ForbiddenException):
        await store.delete_variant(variant.id, "seller-2")


@pytest.mark.asyncio
async def test_single_default_across_successive_creations(store, apparel, variant_rows) -> None:
    product_id = apparel.product.id
    first = await store.create_variant(product_id, "seller-1", _variant(("size", "S")))
    assert len(variant_rows.defaults(product_id)) == 1

    second = await store.create_variant(product_id, "seller-1", _variant(("size", "M")))
    assert [v.id for v in variant_rows.defaults(product_id)] == [first.id]
    assert second.sort_order == 1

    third = await store.create_variant(product_id, "seller-1", _variant(("size", "L"), is_default=True))
    assert [v.id for v in variant_rows.defaults(product_id)] == [third.id]

    listed = await store.list_variants(product_id)
    assert [v.id for v in listed] == [third.id, first.id, second.id]


@pytest.mark.asyncio
async def test_sku_collision_with_concurrent_writer_retries_with_suffix(store, apparel, variant_rows) -> None:
    variant_rows.race_skus.add("cotton-t-s-sizm")

    variant = await store.create_variant(apparel.product.id, "seller-1", _variant(("size", "M")))

    assert variant.sku.startswith("cotton-t-s-sizm-")
    assert len(variant.sku) == len("cotton-t-s-sizm-") + 4
    assert variant_rows.create_attempts == ["cotton-t-s-sizm", variant.sku]


@pytest.mark.asyncio
async def test_sku_retries_exhausted(apparel, variant_rows, attribute_rows, directory, templates) -> None:
    store = VariantStore(
        variant_rows,
        attribute_rows,
        directory,
        templates,
        SkuSynthesizer(variant_rows, suffix_factory=lambda: "zzzz"),
        max_sku_attempts=3,
    )
    variant_rows.race_skus.update({"cotton-t-s-sizm", "cotton-t-s-sizm-zzzz"})

    with pytest.raises(ConflictException) as exc:
        await store.create_variant(apparel.product.id, "seller-1", _variant(("size", "M")))

    assert exc.value.code == "SKU_GENERATION_FAILED"
    assert len(variant_rows.create_attempts) == 3
    assert variant_rows.variants == {}


@pytest.mark.asyncio
async def test_generate_full_cartesian_product(store, assigner, apparel, variant_rows) -> None:
    product = apparel.product
    await _set(
        assigner,
        product,
        ("size", "S"),
        ("size", "M"),
        ("size", "L"),
        ("color", "Red"),
        ("color", "Blue"),
        ("material", "Cotton"),
    )

    result = await store.generate_variants_from_attributes(product.id, "seller-1")

    assert result.failed == []
    assert len(result.created) == 6
    pairs = [(v.combination()["size"], v.combination()["color"]) for v in result.created]
    assert sorted(pairs) == sorted(itertools.product(["S", "M", "L"], ["Red", "Blue"]))
    assert all(set(v.combination()) == {"size", "color"} for v in result.created)
    assert [v.sort_order for v in result.created] == list(range(6))
    assert [v.is_default for v in result.created] == [True] + [False] * 5
    assert len({v.sku for v in result.created}) == 6
    assert all(v.price == product.price and v.quantity == product.quantity for v in result.created)
    assert len(variant_rows.variants) == 6


@pytest.mark.asyncio
async def test_generate_single_value(store, assigner, apparel) -> None:
    await _set(assigner, apparel.product, ("size", "M"), ("material", "Cotton"))

    result = await store.generate_variants_from_attributes(apparel.product.id, "seller-1")

    assert [v.combination() for v in result.created] == [{"size": "M"}]


@pytest.mark.asyncio
async def test_generate_without_variant_attributes(store, assigner, apparel, variant_rows) -> None:
    await _set(assigner, apparel.product, ("material", "Cotton"), ("weight", "180"))

    with pytest.raises(ValidationException) as exc:
        await store.generate_variants_from_attributes(apparel.product.id, "seller-1")

    assert exc.value.code == "NO_VARIANT_ATTRIBUTES"
    assert variant_rows.variants == {}


@pytest.mark.asyncio
async def test_generate_colliding_skus_stay_unique(store, assigner, directory, template_rows) -> None:
    category_id = directory.add_category()
    seed_template(template_rows, category_id, "Size", AttributeType.TEXT, is_variant=True)
    product = directory.add_product(name="Cotton T-Shirt", category_ids=[category_id])
    await _set(assigner, product, ("size", "Large"), ("size", "Largest"))

    result = await store.generate_variants_from_attributes(product.id, "seller-1")

    skus = [v.sku for v in result.created]
    assert len(skus) == 2
    assert skus[0] == "cotton-t-s-sizlar"
    assert skus[1].startswith("cotton-t-s-sizlar-")
    assert len(set(skus)) == 2


@pytest.mark.asyncio
async def test_generate_reports_partial_failures(store, assigner, apparel) -> None:
    product = apparel.product
    existing = await store.create_variant(product.id, "seller-1", _variant(("size", "S"), ("color", "Red")))
    await _set(assigner, product, ("size", "S"), ("size", "M"), ("color", "Red"), ("color", "Blue"))

    result = await store.generate_variants_from_attributes(product.id, "seller-1")

    assert len(result.created) == 3
    assert [(f.combination, f.code) for f in result.failed] == [
        ({"size": "S", "color": "Red"}, "DUPLICATE_VARIANT_COMBINATION")
    ]
    assert all(not v.is_default for v in result.created)
    assert (await store.get_variant(existing.id)).is_default is True


@pytest.mark.asyncio
async def test_generate_refuses_too_many_combinations(
    assigner, apparel, variant_rows, attribute_rows, directory, templates
) -> None:
    store = VariantStore(variant_rows, attribute_rows, directory, templates, max_combinations=4)
    await _set(assigner, apparel.product, ("size", "S"), ("size", "M"), ("size", "L"), ("color", "Red"), ("color", "Blue"))

    with pytest.raises(ValidationException) as exc:
        await store.generate_variants_from_attributes(apparel.product.id, "seller-1")

    assert exc.value.code == "TOO_MANY_COMBINATIONS"
    assert variant_rows.variants == {}


@pytest.mark.asyncio
async def test_update_variant(store, apparel) -> None:
    product_id = apparel.product.id
    variant = await store.create_variant(product_id, "seller-1", _variant(("size", "M"), price=30.0))

    updated = await store.update_variant(
        variant.id,
        "seller-1",
        VariantUpdate(discount_price=25.0, is_active=False, quantity=None),
    )
    assert updated.discount_price == 25.0
    assert updated.is_active is False
    assert updated.quantity == variant.quantity

    with pytest.raises(ValidationException) as exc:
        await store.update_variant(variant.id, "seller-1", VariantUpdate(price=20.0))
    assert exc.value.code == "INVALID_DISCOUNT_PRICE"

    cleared = await store.update_variant(variant.id, "seller-1", VariantUpdate(discount_price=None, price=20.0))
    assert cleared.discount_price is None
    assert cleared.price == 20.0


@pytest.mark.asyncio
async def test_update_variant_attributes(store, apparel) -> None:
    product_id = apparel.product.id
    small = await store.create_variant(product_id, "seller-1", _variant(("size", "S")))
    await store.create_variant(product_id, "seller-1", _variant(("size", "M")))

    with pytest.raises(ConflictException):
        await store.update_variant(small.id, "seller-1", VariantUpdate(attributes=[{"key": "size", "value": "M"}]))

    same = await store.update_variant(small.id, "seller-1", VariantUpdate(attributes=[{"key": "size", "value": "S"}]))
    assert same.combination() == {"size": "S"}

    moved = await store.update_variant(
        small.id,
        "seller-1",
        VariantUpdate(attributes=[{"key": "size", "value": "XL"}, {"key": "color", "value": "Green"}]),
    )
    assert moved.combination() == {"size": "XL", "color": "Green"}
    assert moved.sku == small.sku


@pytest.mark.asyncio
async def test_update_moves_default(store, apparel, variant_rows) -> None:
    product_id = apparel.product.id
    first = await store.create_variant(product_id, "seller-1", _variant(("size", "S")))
    second = await store.create_variant(product_id, "seller-1", _variant(("size", "M")))

    await store.update_variant(second.id, "seller-1", VariantUpdate(is_default=True))
    assert [v.id for v in variant_rows.defaults(product_id)] == [second.id]

    with pytest.raises(ValidationException) as exc:
        await store.update_variant(second.id, "seller-1", VariantUpdate(is_default=False))
    assert exc.value.code == "DEFAULT_VARIANT_REQUIRED"

    untouched = await store.update_variant(first.id, "seller-1", VariantUpdate(is_default=False))
    assert untouched.is_default is False


@pytest.mark.asyncio
async def test_delete_default_promotes_lowest_sort_order(store, apparel, variant_rows) -> None:
    product_id = apparel.product.id
    first = await store.create_variant(product_id, "seller-1", _variant(("size", "S"), sort_order=0))
    await store.create_variant(product_id, "seller-1", _variant(("size", "M"), sort_order=5))
    third = await store.create_variant(product_id, "seller-1", _variant(("size", "L"), sort_order=2))

    assert await store.delete_variant(first.id, "seller-1") is True

    assert [v.id for v in variant_rows.defaults(product_id)] == [third.id]
    assert product_id in variant_rows.products_with_variants
    with pytest.raises(NotFoundException) as exc:
        await store.get_variant(first.id)
    assert exc.value.code == "VARIANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_deleting_last_variant_keeps_product_flag(store, apparel, variant_rows) -> None:
    variant = await store.create_variant(apparel.product.id, "seller-1", _variant(("size", "S")))

    await store.delete_variant(variant.id, "seller-1")

    assert await store.list_variants(apparel.product.id) == []
    assert apparel.product.id in variant_rows.products_with_variants


@pytest.mark.asyncio
async def test_lookup_by_sku(store, apparel) -> None:
    variant = await store.create_variant(apparel.product.id, "seller-1", _variant(("size", "S")))

    assert (await store.get_variant_by_sku(variant.sku)).id == variant.id
    with pytest.raises(NotFoundException):
        await store.get_variant_by_sku("missing-sku")
