"""
PlaceShare Backend: Place Service Tests
==========================================

What:  PlaceService against a real schema (in-memory SQLite).
How:   The geocoder is a FakeGeocoder, file storage a temporary directory.
       Store failures are injected by patching one write inside the
       transaction so the rollback path runs for real.

What we test:
    ✅ Reads by id and by owner, including the empty-owner policy
    ✅ Create: validation, geocoding, owner check, owner-list append
    ✅ Create and delete leave no partial state when a write fails
    ✅ Update and delete are refused for anyone but the creator
    ✅ Image removal on delete is best effort
"""

import uuid
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from placeshare.exceptions import (
    ForbiddenError,
    GeocodeError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from placeshare.models import Place, UserPlace
from placeshare.services.geocoder_base import Coordinates
from placeshare.services.place_service import PlaceService


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def _owner_list(session, user_id) -> list:
    result = await session.execute(
        select(UserPlace.place_id)
        .where(UserPlace.user_id == user_id)
        .order_by(UserPlace.position)
    )
    return [str(place_id) for place_id in result.scalars().all()]


class TestCreate:

    def setup_method(self):
        self.service = PlaceService()

    @pytest.mark.asyncio
    async def test_cafe_scenario(self, db_session, alice, fake_geocoder, storage):
        """Geocoded location, creator and owner-list entry all line up."""
        fake_geocoder.coordinates = Coordinates(lat=1.0, lng=2.0)

        place = await self.service.create(
            db_session,
            owner_id=alice.id,
            title="Cafe",
            description="Nice spot",
            address="1 Main St",
            image_path="images/cafe.png",
        )

        assert place.title == "Cafe"
        assert place.location.lat == 1.0
        assert place.location.lng == 2.0
        assert place.creator == str(alice.id)
        assert place.image == "images/cafe.png"
        assert await _owner_list(db_session, alice.id) == [place.id]
        assert fake_geocoder.calls == ["1 Main St"]

    @pytest.mark.asyncio
    async def test_places_are_appended_in_creation_order(
        self, db_session, alice, fake_geocoder, storage
    ):
        first = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/a.png"
        )
        second = await self.service.create(
            db_session, alice.id, "Park", "Green and quiet", "2 Main St", "images/b.png"
        )

        assert await _owner_list(db_session, alice.id) == [first.id, second.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "title,description,address",
        [
            ("", "Nice spot", "1 Main St"),
            ("   ", "Nice spot", "1 Main St"),
            ("Cafe", "Nice", "1 Main St"),
            ("Cafe", "Nice spot", ""),
            ("Cafe", "Nice spot", "  \t"),
        ],
    )
    async def test_invalid_fields_write_nothing(
        self, db_session, alice, fake_geocoder, storage, title, description, address
    ):
        with pytest.raises(ValidationError):
            await self.service.create(
                db_session, alice.id, title, description, address, "images/x.png"
            )

        assert fake_geocoder.calls == []
        assert await _count(db_session, Place) == 0
        assert await _count(db_session, UserPlace) == 0

    @pytest.mark.asyncio
    async def test_description_of_exactly_five_characters_is_accepted(
        self, db_session, alice, fake_geocoder, storage
    ):
        place = await self.service.create(
            db_session, alice.id, "Cafe", "Quiet", "1 Main St", "images/x.png"
        )
        assert place.description == "Quiet"

    @pytest.mark.asyncio
    async def test_description_length_counts_surrounding_spaces(
        self, db_session, alice, fake_geocoder, storage
    ):
        place = await self.service.create(
            db_session, alice.id, "Cafe", "  abc  ", "1 Main St", "images/x.png"
        )
        assert place.description == "  abc  "

    @pytest.mark.asyncio
    async def test_validation_lists_every_failing_field(self, db_session, alice, fake_geocoder):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create(db_session, alice.id, "", "abc", "", "images/x.png")

        assert set(exc_info.value.context["fields"]) == {"title", "description", "address"}

    @pytest.mark.asyncio
    async def test_unresolvable_address_writes_nothing(
        self, db_session, alice, fake_geocoder, storage
    ):
        fake_geocoder.error = GeocodeError(address="Nowhere 0")

        with pytest.raises(GeocodeError):
            await self.service.create(
                db_session, alice.id, "Cafe", "Nice spot", "Nowhere 0", "images/x.png"
            )

        assert await _count(db_session, Place) == 0

    @pytest.mark.asyncio
    async def test_unknown_owner_is_not_found(self, db_session, fake_geocoder, storage):
        with pytest.raises(NotFoundError):
            await self.service.create(
                db_session, uuid.uuid4(), "Cafe", "Nice spot", "1 Main St", "images/x.png"
            )

        assert await _count(db_session, Place) == 0

    @pytest.mark.asyncio
    async def test_failed_owner_list_write_rolls_back_place(
        self, db_session, alice, fake_geocoder, storage
    ):
        """The place insert is flushed before the owner-list write fails."""
        with patch.object(
            PlaceService,
            "_attach_to_owner",
            AsyncMock(side_effect=SQLAlchemyError("disk I/O error")),
        ):
            with pytest.raises(StoreUnavailableError):
                await self.service.create(
                    db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
                )

        assert await _count(db_session, Place) == 0
        assert await _count(db_session, UserPlace) == 0


class TestReads:

    def setup_method(self):
        self.service = PlaceService()

    @pytest.mark.asyncio
    async def test_get_by_id(self, db_session, alice, fake_geocoder, storage):
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        place = await self.service.get_by_id(db_session, uuid.UUID(created.id))

        assert place == created

    @pytest.mark.asyncio
    async def test_get_by_id_unknown(self, db_session):
        with pytest.raises(NotFoundError, match="Could not find a place"):
            await self.service.get_by_id(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_by_id_store_failure(self, db_session):
        with patch.object(db_session, "get", AsyncMock(side_effect=SQLAlchemyError("gone"))):
            with pytest.raises(StoreUnavailableError):
                await self.service.get_by_id(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_by_owner_returns_only_that_users_places(
        self, db_session, alice, bob, fake_geocoder, storage
    ):
        mine = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/a.png"
        )
        await self.service.create(
            db_session, bob.id, "Gym", "Sweaty place", "3 Main St", "images/b.png"
        )

        places = await self.service.get_by_owner(db_session, alice.id)

        assert [p.id for p in places] == [mine.id]

    @pytest.mark.asyncio
    async def test_get_by_owner_without_places_is_not_found(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await self.service.get_by_owner(db_session, alice.id)

    @pytest.mark.asyncio
    async def test_get_by_owner_unknown_user_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_by_owner(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_by_owner_store_failure(self, db_session, alice):
        with patch.object(
            db_session, "execute", AsyncMock(side_effect=SQLAlchemyError("gone"))
        ):
            with pytest.raises(StoreUnavailableError):
                await self.service.get_by_owner(db_session, alice.id)


class TestUpdate:

    def setup_method(self):
        self.service = PlaceService()

    @pytest.mark.asyncio
    async def test_creator_can_edit_title_and_description(
        self, db_session, alice, fake_geocoder, storage
    ):
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        updated = await self.service.update(
            db_session, alice.id, uuid.UUID(created.id), "Bistro", "Even nicer now"
        )

        assert updated.title == "Bistro"
        assert updated.description == "Even nicer now"
        assert updated.address == created.address
        assert updated.location == created.location
        assert updated.image == created.image
        assert updated.creator == created.creator

    @pytest.mark.asyncio
    async def test_non_creator_is_forbidden_and_place_unchanged(
        self, db_session, alice, bob, fake_geocoder, storage
    ):
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        with pytest.raises(ForbiddenError):
            await self.service.update(
                db_session, bob.id, uuid.UUID(created.id), "Hijacked", "Not yours anymore"
            )

        assert await self.service.get_by_id(db_session, uuid.UUID(created.id)) == created

    @pytest.mark.asyncio
    async def test_unknown_place(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await self.service.update(db_session, alice.id, uuid.uuid4(), "Title", "Valid text")

    @pytest.mark.asyncio
    async def test_invalid_fields_are_checked_first(self, db_session, alice):
        with pytest.raises(ValidationError):
            await self.service.update(db_session, alice.id, uuid.uuid4(), "", "Valid text")

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_original_fields(
        self, db_session, alice, fake_geocoder, storage
    ):
        alice_id = alice.id
        created = await self.service.create(
            db_session, alice_id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        with patch.object(
            db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("disk full"))
        ):
            with pytest.raises(StoreUnavailableError):
                await self.service.update(
                    db_session, alice_id, uuid.UUID(created.id), "Bistro", "Even nicer now"
                )

        place = await self.service.get_by_id(db_session, uuid.UUID(created.id))
        assert place.title == "Cafe"
        assert place.description == "Nice spot"


class TestDelete:

    def setup_method(self):
        self.service = PlaceService()

    async def _create_with_image(self, db_session, owner, storage, sample_png):
        _, relative_path = await storage.store_file(sample_png, ".png")
        return await self.service.create(
            db_session, owner.id, "Cafe", "Nice spot", "1 Main St", relative_path
        )

    @pytest.mark.asyncio
    async def test_creator_deletes_place_entry_and_image(
        self, db_session, alice, fake_geocoder, storage, sample_png
    ):
        created = await self._create_with_image(db_session, alice, storage, sample_png)
        image_file = Path(storage.storage_root) / created.image
        assert image_file.exists()

        result = await self.service.delete(db_session, alice.id, uuid.UUID(created.id))

        assert result.message == "Deleted place."
        assert await _count(db_session, Place) == 0
        assert await _owner_list(db_session, alice.id) == []
        assert not image_file.exists()
        with pytest.raises(NotFoundError):
            await self.service.get_by_id(db_session, uuid.UUID(created.id))

    @pytest.mark.asyncio
    async def test_non_creator_is_forbidden(
        self, db_session, alice, bob, fake_geocoder, storage
    ):
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        with pytest.raises(ForbiddenError):
            await self.service.delete(db_session, bob.id, uuid.UUID(created.id))

        assert await self.service.get_by_id(db_session, uuid.UUID(created.id)) == created
        assert await _owner_list(db_session, alice.id) == [created.id]

    @pytest.mark.asyncio
    async def test_unknown_place(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await self.service.delete(db_session, alice.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_failed_place_delete_restores_owner_entry(
        self, db_session, alice, fake_geocoder, storage
    ):
        """The owner-list delete runs first and is rolled back with the rest."""
        alice_id = alice.id
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/x.png"
        )

        with patch.object(
            db_session, "delete", AsyncMock(side_effect=SQLAlchemyError("lock timeout"))
        ):
            with pytest.raises(StoreUnavailableError):
                await self.service.delete(db_session, alice.id, uuid.UUID(created.id))

        assert await _count(db_session, Place) == 1
        assert await _owner_list(db_session, alice_id) == [created.id]

    @pytest.mark.asyncio
    async def test_missing_image_file_does_not_fail_delete(
        self, db_session, alice, fake_geocoder, storage
    ):
        created = await self.service.create(
            db_session, alice.id, "Cafe", "Nice spot", "1 Main St", "images/never-stored.png"
        )

        result = await self.service.delete(db_session, alice.id, uuid.UUID(created.id))

        assert result.message == "Deleted place."
        assert await _count(db_session, Place) == 0

    @pytest.mark.asyncio
    async def test_image_removal_error_is_swallowed(
        self, db_session, alice, fake_geocoder, storage, sample_png
    ):
        created = await self._create_with_image(db_session, alice, storage, sample_png)

        with patch("placeshare.services.file_service.os.remove", side_effect=PermissionError("ro")):
            result = await self.service.delete(db_session, alice.id, uuid.UUID(created.id))

        assert result.message == "Deleted place."
        assert await _count(db_session, Place) == 0
