import pytest

from homehero.services.errors import (
    ServiceStoreConflictError,
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreValidationError,
)
from homehero.services.service_catalog import SAMPLE_SERVICES


def test_create_service_normalizes_provider_and_defaults(catalog):
    service = catalog.create_service(
        provider_email="  CleanPros@Demo.com ",
        name="  Deep Cleaning  ",
        category="Cleaning",
        price="3000",
        description="Full home deep cleaning.",
        image="https://example.com/cleaning.jpg",
    )
    assert service.provider_email == "cleanpros@demo.com"
    assert service.provider_name == "Unknown"
    assert service.name == "Deep Cleaning"
    assert service.slug == "deep-cleaning"
    assert service.price == 3000.0
    assert service.rating_avg == 0.0
    assert service.reviews == []
    assert service.views == 0


@pytest.mark.parametrize("missing", ["name", "category", "price", "description", "image", "provider_email"])
def test_create_service_requires_fields(catalog, missing):
    fields = {
        "provider_email": "clean@demo.com",
        "name": "Deep Cleaning",
        "category": "Cleaning",
        "price": 3000,
        "description": "Full home deep cleaning.",
        "image": "https://example.com/cleaning.jpg",
    }
    fields[missing] = None
    with pytest.raises(ServiceStoreValidationError):
        catalog.create_service(**fields)


def test_get_service_increments_views(catalog, make_service):
    service = make_service()
    assert catalog.get_service(service.id).views == 1
    assert catalog.get_service(service.id).views == 2
    assert catalog.get_service_by_slug(service.slug).views == 3
    with pytest.raises(ServiceStoreNotFoundError):
        catalog.get_service("svc_missing")
    with pytest.raises(ServiceStoreNotFoundError):
        catalog.get_service_by_slug("no-such-slug")


def test_update_service_owner_only(catalog, make_service):
    service = make_service()
    with pytest.raises(ServiceStorePermissionError):
        catalog.update_service(service.id, actor_email="intruder@example.com", changes={"price": 1})
    with pytest.raises(ServiceStorePermissionError):
        catalog.update_service(service.id, actor_email=None, changes={"price": 1})
    with pytest.raises(ServiceStoreNotFoundError):
        catalog.update_service("svc_missing", actor_email="clean@demo.com", changes={"price": 1})

    updated = catalog.update_service(
        service.id,
        actor_email="CLEAN@demo.com",
        changes={"price": 2500, "description": "Updated", "provider_email": "hijack@example.com"},
    )
    assert updated.price == 2500
    assert updated.description == "Updated"
    assert updated.provider_email == "clean@demo.com"
    assert updated.slug == service.slug


def test_update_service_rejects_blank_values(catalog, make_service):
    service = make_service()
    with pytest.raises(ServiceStoreValidationError):
        catalog.update_service(service.id, actor_email="clean@demo.com", changes={"name": "   "})
    with pytest.raises(ServiceStoreValidationError):
        catalog.update_service(service.id, actor_email="clean@demo.com", changes={"price": -1})


def test_delete_service_owner_only(catalog, make_service):
    service = make_service()
    with pytest.raises(ServiceStorePermissionError):
        catalog.delete_service(service.id, actor_email="intruder@example.com")
    catalog.delete_service(service.id, actor_email="clean@demo.com")
    with pytest.raises(ServiceStoreNotFoundError):
        catalog.get_service(service.id)


def test_list_services_filters_sorts_and_paginates(catalog, make_service):
    make_service(name="AC Repair", category="Electrical", price=1200, provider_email="coolfix@demo.com")
    make_service(name="Deep Cleaning", category="Cleaning", price=3000)
    make_service(name="Electrician On-Demand", category="Electrical", price=600, provider_email="volt@demo.com")

    electrical = catalog.list_services(category="Electrical", sort="priceAsc")
    assert [item.price for item in electrical.items] == [600, 1200]

    searched = catalog.list_services(search="ELECTR")
    assert {item.name for item in searched.items} == {"AC Repair", "Electrician On-Demand"}

    by_provider = catalog.list_services(provider_email="CoolFix@Demo.com")
    assert [item.name for item in by_provider.items] == ["AC Repair"]

    priced = catalog.list_services(min_price=700, max_price=3000, sort="priceDesc")
    assert [item.price for item in priced.items] == [3000, 1200]

    page = catalog.list_services(sort="priceAsc", page=2, limit=2)
    assert page.total == 3
    assert page.pages == 2
    assert page.page == 2
    assert [item.price for item in page.items] == [3000]


def test_list_services_caps_limit_and_validates(catalog, make_service):
    for n in range(3):
        make_service(name=f"Service {n}")
    assert len(catalog.list_services(limit=500).items) == 3
    assert catalog.list_services(limit=500).pages == 1
    with pytest.raises(ServiceStoreValidationError, match="Invalid sort value"):
        catalog.list_services(sort="oops")
    with pytest.raises(ServiceStoreValidationError):
        catalog.list_services(page=0)


def test_top_and_trending(catalog, ledger, reviews, make_service):
    quiet = make_service(name="Quiet Service")
    popular = make_service(name="Popular Service")
    for _ in range(3):
        catalog.get_service(popular.id)
    ledger.create_booking(customer_email="c@example.com", service_id=quiet.id, booking_date="2024-03-15", price=10)
    reviews.submit_review(quiet.id, reviewer_email="c@example.com", rating=5)

    assert catalog.trending()[0].id == popular.id
    assert catalog.top_services()[0].id == quiet.id
    assert len(catalog.top_services(limit=1)) == 1


def test_seed_samples_only_on_empty_catalog(catalog):
    seeded, total = catalog.seed_samples()
    assert seeded == len(SAMPLE_SERVICES)
    assert total == len(SAMPLE_SERVICES)
    slugs = {item.slug for item in catalog.list_services().items}
    assert "deep-cleaning-2bhk" in slugs
    with pytest.raises(ServiceStoreConflictError):
        catalog.seed_samples()


def test_search_folds_non_ascii_case(catalog, make_service):
    make_service(name="École Tutoring", category="Lessons")
    make_service(name="Deep Cleaning")

    found = catalog.list_services(search="école")
    assert [item.name for item in found.items] == ["École Tutoring"]
    assert catalog.list_services(search="ÉCOLE").total == 1


def test_list_services_rejects_page_beyond_storage_range(catalog, make_service):
    make_service()
    with pytest.raises(ServiceStoreValidationError, match="page is out of range"):
        catalog.list_services(page=10**20)
    assert catalog.list_services(page=10**6).items == []
