"""Tests for repository behaviour not covered through the services."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy.exc import OperationalError

from gatherly.database.activity_repository import ActivityRepository
from gatherly.database.friend_repository import FriendEdgeRepository
from gatherly.database.invitation_repository import InvitationRepository
from gatherly.database.user_repository import UserRepository
from gatherly.models.activity import ActivityCreate, Participant
from gatherly.models.invitation import Invitation
from gatherly.models.user import UserProfile
from gatherly.social.exceptions import ProfileNotFoundError, StoreUnavailableError


class TestUserRepository:
    """Test profile create-if-absent and partial update."""

    def test_create_if_absent_keeps_existing_record(self, db_session, alice):
        repo = UserRepository(db_session)

        stored = repo.create_if_absent(
            UserProfile(
                uid=alice.uid,
                display_name="Someone Else",
                created_at=alice.created_at + timedelta(days=10),
            )
        )

        assert stored.display_name == "Alice"
        assert stored.created_at == alice.created_at

    def test_update_profile_only_touches_given_fields(self, db_session, alice):
        repo = UserRepository(db_session)

        updated = repo.update_profile(alice.uid, child_nickname="Sprout")

        assert updated.child_nickname == "Sprout"
        assert updated.display_name == "Alice"
        assert updated.photo_url == alice.photo_url

    def test_update_profile_can_clear_field(self, db_session, alice):
        updated = UserRepository(db_session).update_profile(alice.uid, photo_url=None)
        assert updated.photo_url is None

    def test_update_profile_without_fields_is_noop(self, db_session, alice):
        assert UserRepository(db_session).update_profile(alice.uid) == alice

    def test_update_missing_profile(self, db_session):
        with pytest.raises(ProfileNotFoundError):
            UserRepository(db_session).update_profile("ghost", display_name="Ghost")

    def test_store_error_is_wrapped(self, db_session, monkeypatch):
        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "query", broken_query)

        with pytest.raises(StoreUnavailableError) as exc_info:
            UserRepository(db_session).get("alice")

        assert exc_info.value.operation == "get_profile"
        assert exc_info.value.reason == "store_unavailable"
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestInvitationRepository:
    """Test keyed writes and conditional deletes."""

    def _invitation(self, code, inviter_id="alice"):
        now = datetime(2030, 6, 1, 12, 0)
        return Invitation(
            code=code,
            inviter_id=inviter_id,
            created_at=now,
            expires_at=now + timedelta(days=7),
        )

    def test_save_reports_overwrite(self, db_session):
        repo = InvitationRepository(db_session)

        assert repo.save(self._invitation("ABCD2345")) is False
        assert repo.save(self._invitation("ABCD2345", inviter_id="bob")) is True
        assert repo.get("ABCD2345").inviter_id == "bob"

    def test_delete_reports_whether_row_existed(self, db_session):
        repo = InvitationRepository(db_session)
        repo.save(self._invitation("ABCD2345"))

        assert repo.delete("ABCD2345") is True
        assert repo.delete("ABCD2345") is False


class TestFriendEdgeRepository:
    """Test edge pair deletion."""

    def test_delete_pair_counts_rows(self, db_session, friend_graph, alice, bob):
        friend_graph.add(alice.uid, bob.uid)
        repo = FriendEdgeRepository(db_session)

        assert repo.delete_pair(alice.uid, bob.uid) == 2
        assert repo.delete_pair(alice.uid, bob.uid) == 0


class TestActivityRepository:
    """Test bounded "in" queries and field updates."""

    def test_creator_query_rejects_too_many_values(self, db_session):
        repo = ActivityRepository(db_session, max_in_values=3)

        with pytest.raises(ValueError):
            repo.list_upcoming_by_creators(["a", "b", "c", "d"], datetime(2030, 1, 1))

    def test_creator_query_with_no_ids(self, db_session):
        assert ActivityRepository(db_session).list_upcoming_by_creators([], datetime(2030, 1, 1)) == []

    def test_update_fields_rejects_other_fields(self, db_session):
        with pytest.raises(ValueError):
            ActivityRepository(db_session).update_fields("any", {"creator_id": "mallory"})

    def test_update_fields_missing_activity(self, db_session):
        assert ActivityRepository(db_session).update_fields("missing", {"title": "x"}) is None

    def test_participant_query_only_returns_memberships(self, db_session, activity_manager, clock, alice, bob):
        activity_id = activity_manager.create(
            ActivityCreate(
                title="Library",
                date=clock() + timedelta(days=1),
                creator_id=alice.uid,
                creator_name="Alice",
            )
        )
        repo = ActivityRepository(db_session)

        assert [a.id for a in repo.list_upcoming_by_participant(alice.uid, clock())] == [activity_id]
        assert repo.list_upcoming_by_participant(bob.uid, clock()) == []

    def test_concurrent_duplicate_join_returns_false(self, db_session, activity_manager, monkeypatch, clock, alice, bob):
        from gatherly.database.models import ActivityParticipantDB

        activity_id = activity_manager.create(
            ActivityCreate(
                title="Library",
                date=clock() + timedelta(days=1),
                creator_id=alice.uid,
                creator_name="Alice",
            )
        )
        repo = ActivityRepository(db_session)
        assert repo.add_participant(activity_id, Participant(uid=bob.uid, name="Bob")) is True
        db_session.expunge_all()

        # Another request inserted bob after this one checked for him.
        monkeypatch.setattr(repo, "_has_participant", lambda activity_id, uid: False)

        assert repo.add_participant(activity_id, Participant(uid=bob.uid, name="Robert")) is False

        rows = (
            db_session.query(ActivityParticipantDB)
            .filter(ActivityParticipantDB.activity_id == activity_id, ActivityParticipantDB.uid == bob.uid)
            .all()
        )
        assert [row.name for row in rows] == ["Bob"]
        assert [p.uid for p in repo.get(activity_id).participants] == [alice.uid, bob.uid]
