"""Tests for activity lifecycle and participant membership."""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from gatherly.models.activity import ActivityCreate, ActivityPatch, Participant
from gatherly.social.exceptions import ActivityNotFoundError, InvalidPatchError


@pytest.fixture
def activity_data(clock, alice):
    return ActivityCreate(
        title="Playground",
        date=clock() + timedelta(days=2),
        location="  Central Park ",
        creator_id=alice.uid,
        creator_name=alice.display_name,
        creator_photo_url=alice.photo_url,
    )


@pytest.fixture
def activity_id(activity_manager, activity_data):
    return activity_manager.create(activity_data)


class TestCreateActivity:
    """Test creating and reading activities."""

    def test_creator_is_only_participant(self, activity_manager, activity_id, alice, clock):
        activity = activity_manager.get(activity_id)

        assert activity.title == "Playground"
        assert activity.location == "Central Park"
        assert activity.creator_id == alice.uid
        assert activity.created_at == clock()
        assert activity.participants == [
            Participant(uid=alice.uid, name="Alice", photo_url=alice.photo_url)
        ]

    @pytest.mark.parametrize("location", ["", "   ", None])
    def test_blank_location_becomes_none(self, activity_manager, clock, alice, location):
        activity_id = activity_manager.create(
            ActivityCreate(
                title="Picnic",
                date=clock() + timedelta(days=1),
                location=location,
                creator_id=alice.uid,
                creator_name="Alice",
            )
        )
        assert activity_manager.get(activity_id).location is None

    def test_aware_date_is_stored_as_naive_utc(self, activity_manager, alice):
        aware = datetime(2030, 7, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        activity_id = activity_manager.create(
            ActivityCreate(title="Swim", date=aware, creator_id=alice.uid, creator_name="Alice")
        )
        assert activity_manager.get(activity_id).date == datetime(2030, 7, 1, 12, 0)

    def test_title_is_required(self, clock, alice):
        with pytest.raises(ValidationError):
            ActivityCreate(title="", date=clock(), creator_id=alice.uid, creator_name="Alice")

    def test_get_missing_returns_none(self, activity_manager):
        assert activity_manager.get("does-not-exist") is None


class TestUpdateActivity:
    """Test partial updates."""

    def test_update_only_touches_given_fields(self, activity_manager, activity_id, activity_data):
        updated = activity_manager.update(activity_id, ActivityPatch(title="Zoo"))

        assert updated.title == "Zoo"
        assert updated.date == activity_data.date
        assert updated.location == "Central Park"
        assert len(updated.participants) == 1

    def test_update_can_clear_location(self, activity_manager, activity_id):
        updated = activity_manager.update(activity_id, ActivityPatch(location=" "))
        assert updated.location is None

    def test_update_cannot_clear_title(self, activity_manager, activity_id):
        with pytest.raises(InvalidPatchError) as exc_info:
            activity_manager.update(activity_id, ActivityPatch(title=None))
        assert exc_info.value.reason == "invalid_patch"
        assert exc_info.value.field == "title"
        assert activity_manager.get(activity_id).title == "Playground"

    def test_update_cannot_clear_date(self, activity_manager, activity_id):
        with pytest.raises(InvalidPatchError):
            activity_manager.update(activity_id, ActivityPatch(date=None))

    def test_empty_patch_returns_activity(self, activity_manager, activity_id):
        assert activity_manager.update(activity_id, ActivityPatch()).id == activity_id

    def test_update_missing_activity(self, activity_manager):
        with pytest.raises(ActivityNotFoundError):
            activity_manager.update("does-not-exist", ActivityPatch(title="Zoo"))


class TestDeleteActivity:
    """Test deleting activities."""

    def test_delete_removes_activity_and_members(self, activity_manager, activity_id, bob, db_session):
        from gatherly.database.models import ActivityParticipantDB

        activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bob"))
        activity_manager.delete(activity_id)

        assert activity_manager.get(activity_id) is None
        assert db_session.query(ActivityParticipantDB).filter(
            ActivityParticipantDB.activity_id == activity_id
        ).count() == 0

    def test_delete_missing_activity_succeeds(self, activity_manager):
        activity_manager.delete("does-not-exist")


class TestMembership:
    """Test join and leave keyed by uid."""

    def test_join_appends_participant(self, activity_manager, activity_id, alice, bob):
        activity = activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bob"))

        assert [p.uid for p in activity.participants] == [alice.uid, bob.uid]
        assert activity.has_participant(bob.uid)

    def test_join_twice_keeps_one_entry(self, activity_manager, activity_id, bob):
        activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bob"))
        activity = activity_manager.join(activity_id, Participant(uid=bob.uid, name="Robert"))

        bobs = [p for p in activity.participants if p.uid == bob.uid]
        assert len(bobs) == 1
        assert bobs[0].name == "Bob"

    def test_leave_matches_by_uid_after_name_change(self, activity_manager, activity_id, alice, bob):
        activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bob", photo_url="old.png"))

        activity = activity_manager.leave(activity_id, bob.uid)

        assert [p.uid for p in activity.participants] == [alice.uid]

    def test_leave_when_not_member_is_noop(self, activity_manager, activity_id, alice, carol):
        activity = activity_manager.leave(activity_id, carol.uid)
        assert [p.uid for p in activity.participants] == [alice.uid]

    def test_creator_cannot_leave(self, activity_manager, activity_id, alice):
        activity = activity_manager.leave(activity_id, alice.uid)
        assert activity.has_participant(alice.uid)
        assert activity_manager.get(activity_id).has_participant(alice.uid)

    def test_join_missing_activity(self, activity_manager, bob):
        with pytest.raises(ActivityNotFoundError):
            activity_manager.join("does-not-exist", Participant(uid=bob.uid))

    def test_leave_missing_activity(self, activity_manager, bob):
        with pytest.raises(ActivityNotFoundError):
            activity_manager.leave("does-not-exist", bob.uid)

    def test_rejoin_after_leave(self, activity_manager, activity_id, alice, bob):
        activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bob"))
        activity_manager.leave(activity_id, bob.uid)
        activity = activity_manager.join(activity_id, Participant(uid=bob.uid, name="Bobby"))

        assert [p.name for p in activity.participants] == ["Alice", "Bobby"]


class TestParticipantOrder:
    """Test that participants are listed creator first, then in join order."""

    def _create(self, activity_manager, clock, creator):
        return activity_manager.create(
            ActivityCreate(
                title="Sandpit",
                date=clock() + timedelta(days=1),
                creator_id=creator.uid,
                creator_name=creator.display_name,
            )
        )

    def test_creator_first_when_joiner_uid_sorts_earlier(self, activity_manager, make_profile, clock):
        zed = make_profile("zed", display_name="Zed")
        amy = make_profile("amy", display_name="Amy")
        activity_id = self._create(activity_manager, clock, zed)

        activity = activity_manager.join(activity_id, Participant(uid=amy.uid, name="Amy"))

        assert [p.uid for p in activity.participants] == ["zed", "amy"]

    def test_join_order_survives_clock_going_backwards(self, activity_manager, make_profile, clock):
        zed = make_profile("zed", display_name="Zed")
        activity_id = self._create(activity_manager, clock, zed)

        clock.advance(seconds=-5)
        activity_manager.join(activity_id, Participant(uid="zzz", name="Zzz"))
        clock.advance(seconds=-5)
        activity = activity_manager.join(activity_id, Participant(uid="aaa", name="Aaa"))

        assert [p.uid for p in activity.participants] == ["zed", "zzz", "aaa"]

    def test_rejoin_goes_to_the_end(self, activity_manager, make_profile, clock):
        zed = make_profile("zed", display_name="Zed")
        activity_id = self._create(activity_manager, clock, zed)
        activity_manager.join(activity_id, Participant(uid="amy"))
        activity_manager.join(activity_id, Participant(uid="bea"))

        activity_manager.leave(activity_id, "amy")
        activity = activity_manager.join(activity_id, Participant(uid="amy"))

        assert [p.uid for p in activity.participants] == ["zed", "bea", "amy"]
