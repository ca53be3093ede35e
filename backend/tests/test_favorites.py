import pytest

from homehero.services.errors import (
    ServiceStoreNotFoundError,
    ServiceStorePermissionError,
    ServiceStoreValidationError,
)


def test_add_favorite_is_idempotent(favorites, make_service):
    service = make_service()
    first, created = favorites.add_favorite(user_email="c@example.com", service_id=service.id)
    again, created_again = favorites.add_favorite(user_email="C@Example.com", service_id=service.id)

    assert created is True
    assert created_again is False
    assert again.id == first.id

    listed = favorites.list_favorites("c@example.com")
    assert len(listed) == 1
    assert listed[0].service.name == "Deep Cleaning"


def test_add_favorite_validation(favorites, make_service):
    service = make_service()
    with pytest.raises(ServiceStoreValidationError):
        favorites.add_favorite(user_email="c@example.com", service_id=None)
    with pytest.raises(ServiceStoreValidationError):
        favorites.add_favorite(user_email="", service_id=service.id)
    with pytest.raises(ServiceStoreNotFoundError):
        favorites.add_favorite(user_email="c@example.com", service_id="svc_missing")


def test_delete_favorite_requires_owner(favorites, make_service):
    service = make_service()
    favorite, _ = favorites.add_favorite(user_email="c@example.com", service_id=service.id)

    with pytest.raises(ServiceStorePermissionError):
        favorites.delete_favorite(favorite.id, requester_email="other@example.com")
    favorites.delete_favorite(favorite.id, requester_email="c@example.com")
    assert favorites.list_favorites("c@example.com") == []
    with pytest.raises(ServiceStoreNotFoundError):
        favorites.delete_favorite(favorite.id, requester_email="c@example.com")


def test_favorite_of_deleted_service_lists_without_service(favorites, catalog, make_service):
    service = make_service()
    favorites.add_favorite(user_email="c@example.com", service_id=service.id)
    catalog.delete_service(service.id, actor_email="clean@demo.com")

    listed = favorites.list_favorites("c@example.com")
    assert len(listed) == 1
    assert listed[0].service is None
