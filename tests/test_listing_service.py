"""
Tests for ListingService: ownership, upload atomicity and image modes.
"""

import asyncio
import time
import pytest
from unittest.mock import patch
from sqlalchemy import inspect as sa_inspect

from maskan.schemas.listing import ListingCreate, ListingUpdate
from maskan.services.listing import ListingService
from maskan.services.uploads import UploadPipeline
from maskan.storage import StoredBlob
from maskan.utils.exceptions import (
    ListingNotFoundError,
    ListingOwnershipError,
    RequestTimeoutError,
    UploadRejectedError,
    UpstreamFailureError,
    ValidationError,
)
from tests.conftest import MemoryBlobStore, UserFactory, make_settings, pdf_file, png_file


def listing_data(**overrides) -> ListingCreate:
    data = {
        "title": "Sea view apartment",
        "price": "1250000",
        "city": "Dubai",
        "location": "Dubai Marina",
        "propertyType": "Apartment",
        "beds": 2,
    }
    data.update(overrides)
    return ListingCreate.model_validate(data)


class SlowBlobStore(MemoryBlobStore):
    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        await asyncio.sleep(0.3)
        return await super().put(key, data, content_type)


class ThreadedBlobStore(MemoryBlobStore):
    """Stores from a worker thread, the way the SDK-backed stores do."""

    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        def write() -> StoredBlob:
            time.sleep(0.3)
            self.blobs[key] = data
            return StoredBlob(url=f"https://blobs.test/{key}", key=key)

        return await asyncio.to_thread(write)


class TestCreateListing:
    """Test listing creation."""

    async def test_create_with_images_and_pdf(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)

        listing = await listing_service.create_listing(
            owner, listing_data(), [png_file("a.png"), png_file("b.png")], [pdf_file()]
        )

        assert listing.owner_id == owner.id
        assert len(listing.images) == 2
        assert listing.primary_image_url == listing.image_urls[0]
        assert listing.image_urls[0].endswith("a.png")
        assert listing.document_url.endswith("brochure.pdf")
        assert [owned.id for owned in await listing_service.list_for_owner(owner)] == [listing.id]
        assert len(blob_store.blobs) == 3

    async def test_image_required(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)

        with pytest.raises(UploadRejectedError):
            await listing_service.create_listing(owner, listing_data(), [])

    async def test_invalid_file_stores_nothing(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)
        broken = png_file("broken.png")
        broken = type(broken)(broken.field, broken.filename, broken.content_type, b"not an image")

        with pytest.raises(UploadRejectedError):
            await listing_service.create_listing(owner, listing_data(), [png_file(), broken])

        assert blob_store.blobs == {}
        assert await listing_service.list_listings() == []

    async def test_storage_failure_leaves_no_trace(self, app, db_session, auth_service, settings):
        store = MemoryBlobStore(fail_on="p2.png")
        service = ListingService(db_session, settings, UploadPipeline(store, settings))
        owner, _ = await UserFactory.create_user(auth_service)

        with pytest.raises(UpstreamFailureError):
            await service.create_listing(
                owner, listing_data(), [png_file(f"p{index}.png") for index in range(4)]
            )

        assert store.blobs == {}
        assert await service.list_listings() == []
        assert await service.list_for_owner(owner) == []

    async def test_database_failure_discards_blobs(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)

        with patch.object(
            listing_service.listing_repo, "create_for_owner", side_effect=RuntimeError("db down")
        ):
            with pytest.raises(RuntimeError):
                await listing_service.create_listing(owner, listing_data(), [png_file(), png_file()])

        assert blob_store.blobs == {}
        assert len(blob_store.deleted) == 2

    async def test_deadline_aborts_and_rolls_back(self, db_session, auth_service, tmp_path):
        settings = make_settings(tmp_path, request_timeout_seconds=0.05)
        store = SlowBlobStore()
        service = ListingService(db_session, settings, UploadPipeline(store, settings))
        owner, _ = await UserFactory.create_user(auth_service)

        with pytest.raises(RequestTimeoutError):
            await service.create_listing(owner, listing_data(), [png_file()])

        assert store.blobs == {}
        assert len(store.deleted) == 1
        assert await service.list_listings() == []

    async def test_deadline_waits_for_threaded_upload(self, db_session, auth_service, tmp_path):
        settings = make_settings(tmp_path, request_timeout_seconds=0.05)
        store = ThreadedBlobStore()
        service = ListingService(db_session, settings, UploadPipeline(store, settings))
        owner, _ = await UserFactory.create_user(auth_service)

        with pytest.raises(RequestTimeoutError):
            await service.create_listing(owner, listing_data(), [png_file("photo.png")])

        assert store.blobs == {}
        assert len(store.deleted) == 1
        assert store.deleted[0].endswith("photo.png")
        assert await service.list_listings() == []

    async def test_deadline_during_write_keeps_listing(self, db_session, auth_service, tmp_path):
        settings = make_settings(tmp_path, request_timeout_seconds=0.05)
        store = MemoryBlobStore()
        service = ListingService(db_session, settings, UploadPipeline(store, settings))
        owner, _ = await UserFactory.create_user(auth_service)
        create_for_owner = service.listing_repo.create_for_owner

        async def slow_create(*args, **kwargs):
            created = await create_for_owner(*args, **kwargs)
            await asyncio.sleep(0.2)
            return created

        with patch.object(service.listing_repo, "create_for_owner", slow_create):
            listing = await service.create_listing(owner, listing_data(), [png_file()])

        assert [stored.id for stored in await service.list_listings()] == [listing.id]
        assert list(store.blobs) == [image.storage_key for image in listing.images]
        assert store.deleted == []

    async def test_owner_listings_not_loaded_with_user(self, listing_service: ListingService, auth_service, db_session):
        owner, token = await UserFactory.create_user(auth_service)
        await listing_service.create_listing(owner, listing_data(), [png_file()])
        db_session.expire_all()

        user = await auth_service.get_user_from_token(token)

        assert "listings" in sa_inspect(user).unloaded
        assert len(await listing_service.list_for_owner(user)) == 1


class TestQueries:
    """Test listing reads."""

    async def test_filters_and_ordering(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        first = await listing_service.create_listing(owner, listing_data(), [png_file()])
        second = await listing_service.create_listing(
            owner, listing_data(location="Downtown"), [png_file()]
        )
        await listing_service.create_listing(owner, listing_data(city="Abu Dhabi"), [png_file()])

        dubai = await listing_service.list_listings(city="Dubai")
        marina = await listing_service.list_listings(city="Dubai", location="Dubai Marina")

        assert [listing.id for listing in dubai] == [first.id, second.id]
        assert [listing.id for listing in marina] == [first.id]
        assert await listing_service.list_listings(city="Sharjah") == []
        assert [listing.id for listing in await listing_service.list_listings(city="Dubai")] == [
            listing.id for listing in dubai
        ]

    async def test_get_unknown_or_malformed_id(self, listing_service: ListingService):
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing("not-a-uuid")
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing("00000000-0000-0000-0000-000000000000")

    async def test_list_for_owner(self, listing_service: ListingService, auth_service):
        ann, _ = await UserFactory.create_user(auth_service)
        bob, _ = await UserFactory.create_user(auth_service)
        mine = await listing_service.create_listing(ann, listing_data(), [png_file()])
        await listing_service.create_listing(bob, listing_data(), [png_file()])

        owned = await listing_service.list_for_owner(ann)

        assert [listing.id for listing in owned] == [mine.id]


class TestUpdateListing:
    """Test listing updates."""

    async def test_update_fields_only(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file()])
        images_before = listing.image_urls

        updated = await listing_service.update_listing(
            str(listing.id), owner, ListingUpdate.model_validate({"title": "Renovated", "beds": 3})
        )

        assert updated.title == "Renovated"
        assert updated.beds == 3
        assert updated.city == "Dubai"
        assert updated.image_urls == images_before

    async def test_replace_images_deletes_old_blobs(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file("old.png")])
        old_key = listing.images[0].storage_key

        updated = await listing_service.update_listing(
            str(listing.id), owner, ListingUpdate(), [png_file("new1.png"), png_file("new2.png")]
        )

        assert [url.rsplit("-", 1)[-1] for url in updated.image_urls] == ["new1.png", "new2.png"]
        assert old_key in blob_store.deleted
        assert old_key not in blob_store.blobs

    async def test_append_images(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file("first.png")])

        updated = await listing_service.update_listing(
            str(listing.id), owner, ListingUpdate(), [png_file("second.png")], image_mode="append"
        )

        assert [url.rsplit("-", 1)[-1] for url in updated.image_urls] == ["first.png", "second.png"]
        assert updated.primary_image_url.endswith("first.png")

    async def test_append_respects_image_cap(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(
            owner, listing_data(), [png_file() for _ in range(8)]
        )

        with pytest.raises(UploadRejectedError):
            await listing_service.update_listing(
                str(listing.id), owner, ListingUpdate(), [png_file() for _ in range(3)], image_mode="append"
            )

    async def test_unknown_image_mode(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file()])

        with pytest.raises(ValidationError):
            await listing_service.update_listing(str(listing.id), owner, ListingUpdate(), image_mode="merge")

    async def test_non_owner_cannot_update(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        intruder, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file()])

        with pytest.raises(ListingOwnershipError):
            await listing_service.update_listing(
                str(listing.id), intruder, ListingUpdate.model_validate({"title": "Mine now"})
            )

        assert (await listing_service.get_listing(str(listing.id))).title == "Sea view apartment"

    async def test_new_pdf_replaces_old(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file()], [pdf_file("v1.pdf")])
        old_key = listing.document_storage_key

        updated = await listing_service.update_listing(
            str(listing.id), owner, ListingUpdate(), documents=[pdf_file("v2.pdf")]
        )

        assert updated.document_url.endswith("v2.pdf")
        assert old_key in blob_store.deleted


class TestDeleteListing:
    """Test listing deletion."""

    async def test_owner_deletes(self, listing_service: ListingService, auth_service, blob_store):
        owner, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file(), png_file()])
        listing_id = str(listing.id)

        snapshot = await listing_service.delete_listing(listing_id, owner)

        assert snapshot.id == listing_id
        assert len(snapshot.images) == 2
        assert await listing_service.list_for_owner(owner) == []
        assert blob_store.blobs == {}
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing(listing_id)

    async def test_non_owner_cannot_delete(self, listing_service: ListingService, auth_service):
        owner, _ = await UserFactory.create_user(auth_service)
        intruder, _ = await UserFactory.create_user(auth_service)
        listing = await listing_service.create_listing(owner, listing_data(), [png_file()])

        with pytest.raises(ListingOwnershipError):
            await listing_service.delete_listing(str(listing.id), intruder)

        assert (await listing_service.get_listing(str(listing.id))).id == listing.id
