"""Integration tests for tenant-scoped storage, search and schema drift."""

import itertools
from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace_api.core.attributes import AttributeField, AttributeType
from marketplace_api.core.errors import (
    CategoryInUse,
    DuplicateCategory,
    MissingRequired,
    NotFoundInTenant,
    SchemaNotConfigured,
    TenantRequired,
    UnknownField,
)
from marketplace_api.core.settings import AppSettings
from marketplace_api.core.tenancy import TenantScope, scoped
from marketplace_api.repositories.catalog import CategoryRepository, PropertyRepository
from marketplace_api.schemas.catalog import CategoryCreate, CategoryUpdate, PropertyCreate, PropertyUpdate
from marketplace_api.schemas.search import SearchCriteria
from marketplace_api.services.catalog import CategoryService, PropertyService
from marketplace_api.services.search import FilterBuilder

from factories import add_category

pytestmark = pytest.mark.integration


def _listing(title, price, location="Springfield", category="Residential", **attributes):
    return PropertyCreate(
        title=title,
        price=Decimal(price),
        location=location,
        category_name=category,
        attributes=attributes or {"bedrooms": 3},
    )


async def _create(session, tenant_id, *payloads):
    with scoped(tenant_id) as scope:
        svc = PropertyService(session, scope, AppSettings())
        return [await svc.create_property(p) for p in payloads]


async def _search(session, tenant_id, **criteria):
    with scoped(tenant_id) as scope:
        page = await PropertyService(session, scope, AppSettings()).search(SearchCriteria(**criteria))
    return page


def _titles(page):
    return sorted(item.title for item in page.items)


@pytest.mark.asyncio
async def test_properties_are_invisible_across_tenants(session, tenants):
    (acme_home,) = await _create(session, "acme", _listing("Acme home", "300000"))
    (globex_home,) = await _create(session, "globex", _listing("Globex home", "300000"))

    with scoped("globex") as scope:
        repo = PropertyRepository(session, scope)
        assert await repo.get_property(acme_home.id) is None
        assert (await repo.get_property(globex_home.id)).title == "Globex home"
        with pytest.raises(NotFoundInTenant) as exc:
            await PropertyService(session, scope).get_property(acme_home.id)

    # reported exactly like an id that does not exist anywhere
    with scoped("globex") as scope:
        with pytest.raises(NotFoundInTenant) as missing:
            await PropertyService(session, scope).get_property(uuid4())
    assert exc.value.details == missing.value.details


@pytest.mark.asyncio
async def test_search_never_crosses_tenants(session, tenants):
    await _create(session, "acme", _listing("A1", "100000"), _listing("A2", "900000", location="Shelbyville"))
    await _create(session, "globex", _listing("G1", "100000"), _listing("G2", "900000", location="Shelbyville"))

    criteria_variants = [
        {},
        {"min_price": "0"},
        {"location": "ville"},
        {"category": "Residential", "attributes": {"bedrooms": "3"}},
        {"category": "Unknown"},
    ]
    for criteria in criteria_variants:
        page = await _search(session, "acme", **criteria)
        assert page.items, criteria
        assert all(item.title.startswith("A") for item in page.items), criteria


@pytest.mark.asyncio
async def test_spec_reused_under_other_scope_matches_nothing(session, tenants):
    await _create(session, "acme", _listing("A1", "100000"))
    await _create(session, "globex", _listing("G1", "100000"))

    with scoped("acme") as acme:
        spec = await FilterBuilder(acme, CategoryRepository(session, acme), AppSettings()).build(SearchCriteria())

    with scoped("globex") as globex:
        items, total = await PropertyRepository(session, globex).search(spec)
    assert items == []
    assert total == 0


@pytest.mark.asyncio
async def test_store_access_requires_tenant(session, tenants):
    empty = TenantScope()
    with pytest.raises(TenantRequired):
        await PropertyRepository(session, empty).get_property(uuid4())
    with pytest.raises(TenantRequired):
        await CategoryRepository(session, empty).list_categories()


@pytest.mark.asyncio
async def test_min_price_filter(session, tenants):
    await _create(
        session,
        "acme",
        *(_listing(f"P{p}", p) for p in ("200000", "400000", "600000", "800000")),
    )
    page = await _search(session, "acme", min_price="500000")
    assert _titles(page) == ["P600000", "P800000"]
    assert page.total == 2


@pytest.mark.asyncio
async def test_attribute_filter_is_type_exact(session, tenants):
    land = [AttributeField(name="bedrooms", type=AttributeType.STRING)]
    await add_category(session, "acme", "Land", land)
    await _create(
        session,
        "acme",
        _listing("Three", "300000", bedrooms=3),
        _listing("Four", "300000", bedrooms=4),
        _listing("Text three", "300000", category="Land", bedrooms="3"),
    )

    # "3" becomes the number 3 under Residential's schema
    page = await _search(session, "acme", category="Residential", attributes={"bedrooms": "3"})
    assert _titles(page) == ["Three"]

    # without a category the value stays a string and only matches string attributes
    page = await _search(session, "acme", attributes={"bedrooms": "3"})
    assert _titles(page) == ["Text three"]


@pytest.mark.asyncio
async def test_number_predicate_matches_float_and_int(session, tenants):
    await _create(session, "acme", _listing("Float", "1", bedrooms=2.0), _listing("Int", "1", bedrooms=2))
    page = await _search(session, "acme", category="Residential", attributes={"bedrooms": "2"})
    assert _titles(page) == ["Float", "Int"]


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["99999999999999999999999", "-99999999999999999999999", "1e999"])
async def test_out_of_range_number_predicate_matches_nothing(session, tenants, raw):
    await _create(session, "acme", _listing("Three", "1", bedrooms=3))
    page = await _search(session, "acme", category="Residential", attributes={"bedrooms": raw})
    assert page.items == []
    assert page.total == 0


@pytest.mark.asyncio
async def test_null_optional_attribute_is_not_stored(session, tenants):
    (home,) = await _create(session, "acme", _listing("Home", "1", bedrooms=3, heating=None))
    assert home.attributes == {"bedrooms": 3}

    with scoped("acme") as scope:
        stored = await PropertyRepository(session, scope).get_property(home.id)
    assert stored.attributes == {"bedrooms": 3}


@pytest.mark.asyncio
async def test_boolean_and_string_predicates(session, tenants):
    await _create(
        session,
        "acme",
        _listing("Garage gas", "1", bedrooms=1, hasGarage=True, heating="gas"),
        _listing("Garage oil", "1", bedrooms=1, hasGarage=True, heating="oil"),
        _listing("No garage", "1", bedrooms=1, hasGarage=False, heating="gas"),
    )
    page = await _search(
        session, "acme", category="Residential", attributes={"hasGarage": "TRUE", "heating": "gas"}
    )
    assert _titles(page) == ["Garage gas"]
    page = await _search(session, "acme", category="Residential", attributes={"hasGarage": "false"})
    assert _titles(page) == ["No garage"]


@pytest.mark.asyncio
async def test_filter_composition_is_commutative(session, tenants):
    await _create(
        session,
        "acme",
        _listing("Match", "450000", location="12 Elm St, Springfield", bedrooms=3),
        _listing("Too cheap", "100000", location="Springfield", bedrooms=3),
        _listing("Wrong town", "450000", location="Shelbyville", bedrooms=3),
        _listing("Wrong size", "450000", location="Springfield", bedrooms=5),
        _listing("Too dear", "990000", location="Springfield", bedrooms=3),
    )
    dimensions = [
        ("min_price", "200000"),
        ("max_price", "500000"),
        ("location", "SPRINGFIELD"),
        ("attributes", {"bedrooms": "3"}),
    ]
    results = set()
    for order in itertools.permutations(dimensions):
        criteria = dict(order, category="Residential")
        page = await _search(session, "acme", **criteria)
        results.add(tuple(_titles(page)))
    assert results == {("Match",)}


@pytest.mark.asyncio
async def test_location_filter_escapes_wildcards(session, tenants):
    await _create(
        session,
        "acme",
        _listing("Percent", "1", location="100% Main St"),
        _listing("Plain", "1", location="1000 Main St"),
    )
    page = await _search(session, "acme", location="0% main")
    assert _titles(page) == ["Percent"]


@pytest.mark.asyncio
async def test_sorting_and_paging(session, tenants):
    await _create(session, "acme", *(_listing(f"P{i}", str(i * 1000)) for i in range(1, 6)))

    first = await _search(session, "acme", sort_by="price", sort_dir="ASC", page=0, size=2)
    second = await _search(session, "acme", sort_by="price", sort_dir="ASC", page=1, size=2)
    last = await _search(session, "acme", sort_by="price", sort_dir="ASC", page=2, size=2)

    assert [i.title for i in first.items] == ["P1", "P2"]
    assert [i.title for i in second.items] == ["P3", "P4"]
    assert [i.title for i in last.items] == ["P5"]
    assert first.total == 5
    assert first.total_pages == 3

    desc = await _search(session, "acme", sort_by="price", sort_dir="DESC", size=1)
    assert [i.title for i in desc.items] == ["P5"]


@pytest.mark.asyncio
async def test_schema_change_does_not_touch_stored_attributes(session, tenants):
    (home,) = await _create(session, "acme", _listing("Home", "250000", bedrooms=3))
    category_id = tenants["acme"]["residential"].id

    new_schema = [
        AttributeField(name="pool", type=AttributeType.BOOLEAN, required=True),
    ]
    with scoped("acme") as scope:
        await CategoryService(session, scope).update_category(
            category_id, CategoryUpdate(name="Residential", attribute_schema=new_schema)
        )
        svc = PropertyService(session, scope)
        stored = await svc.get_property(home.id)
        assert stored.attributes == {"bedrooms": 3}

        # the next write must satisfy the schema current at that time
        update = PropertyUpdate(title="Home", price=Decimal("250000"), location="Springfield", attributes={"bedrooms": 3})
        with pytest.raises(MissingRequired) as exc:
            await svc.update_property(home.id, update)
        assert exc.value.field == "pool"

        update.attributes = {"pool": True, "bedrooms": 3}
        with pytest.raises(UnknownField):
            await svc.update_property(home.id, update)

        update.attributes = {"pool": True}
        updated = await svc.update_property(home.id, update)
        assert updated.attributes == {"pool": True}


@pytest.mark.asyncio
async def test_category_without_schema_rejects_properties(session, tenants):
    await add_category(session, "acme", "Unstructured")
    with pytest.raises(SchemaNotConfigured):
        await _create(session, "acme", _listing("Nope", "1", category="Unstructured"))


@pytest.mark.asyncio
async def test_property_requires_category_in_own_tenant(session, tenants):
    await add_category(session, "globex", "Commercial", [AttributeField(name="floors", type=AttributeType.NUMBER)])
    with pytest.raises(NotFoundInTenant):
        await _create(session, "acme", _listing("Office", "1", category="Commercial", floors=2))


@pytest.mark.asyncio
async def test_moving_property_to_another_category(session, tenants):
    await add_category(session, "acme", "Commercial", [AttributeField(name="floors", type=AttributeType.NUMBER)])
    (home,) = await _create(session, "acme", _listing("Shop", "1", bedrooms=1))
    with scoped("acme") as scope:
        moved = await PropertyService(session, scope).update_property(
            home.id,
            PropertyUpdate(
                title="Shop",
                price=Decimal("1"),
                location="Springfield",
                category_name="Commercial",
                attributes={"floors": 2},
            ),
        )
    assert moved.category.name == "Commercial"
    assert moved.attributes == {"floors": 2}


@pytest.mark.asyncio
async def test_category_delete_guard(session, tenants):
    (home,) = await _create(session, "acme", _listing("Home", "1"))
    category_id = tenants["acme"]["residential"].id
    with scoped("acme") as scope:
        categories = CategoryService(session, scope)
        with pytest.raises(CategoryInUse):
            await categories.delete_category(category_id)

        await PropertyService(session, scope).delete_property(home.id)
        await categories.delete_category(category_id)
        with pytest.raises(NotFoundInTenant):
            await categories.get_category(category_id)


@pytest.mark.asyncio
async def test_category_names_unique_per_tenant(session, tenants):
    with scoped("acme") as scope:
        svc = CategoryService(session, scope)
        with pytest.raises(DuplicateCategory):
            await svc.create_category(CategoryCreate(name="Residential"))
        land = await svc.create_category(CategoryCreate(name="Land"))
        with pytest.raises(DuplicateCategory):
            await svc.update_category(land.id, CategoryUpdate(name="Residential"))

    # the same name is free in another tenant
    with scoped("globex") as scope:
        created = await CategoryService(session, scope).create_category(CategoryCreate(name="Land"))
    assert created.tenant_id == "globex"
