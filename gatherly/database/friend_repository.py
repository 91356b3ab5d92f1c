"""Repository for directional friend edges."""

import logging
from typing import Iterable, List, Optional
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, aliased
from sqlalchemy.exc import SQLAlchemyError

from gatherly.models.friend import Friend, FriendEdge
from gatherly.database.models import FriendEdgeDB
from gatherly.social.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class FriendEdgeRepository:
    """Repository for friend edge rows.

    Each row is one direction of a friendship. Write methods accept
    `commit=False` so several rows can be staged and committed together.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_edge(self, owner_uid: str, friend_uid: str) -> Optional[FriendEdge]:
        """Get the edge stored under `owner_uid` for `friend_uid`."""
        try:
            row = (
                self.db.query(FriendEdgeDB)
                .filter(FriendEdgeDB.owner_uid == owner_uid, FriendEdgeDB.friend_uid == friend_uid)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("get_friend_edge", f"{owner_uid}/{friend_uid}") from e
        return row.to_pydantic() if row else None

    def list_edges(self, owner_uid: str) -> List[FriendEdge]:
        """All edges stored under `owner_uid`, including one-sided ones.

        Diagnostic helper for inspecting raw edge state; friendship reads go
        through `get_edge` and `list_mutual`.
        """
        try:
            rows = self.db.query(FriendEdgeDB).filter(FriendEdgeDB.owner_uid == owner_uid).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("list_friend_edges", owner_uid) from e
        return [row.to_pydantic() for row in rows]

    def list_mutual(self, owner_uid: str) -> List[Friend]:
        """Friends of `owner_uid` whose reverse edge also exists.

        Ordered by display name (case-insensitive, nulls last), then uid.
        """
        reverse = aliased(FriendEdgeDB)
        try:
            rows = (
                self.db.query(FriendEdgeDB)
                .join(
                    reverse,
                    and_(
                        reverse.owner_uid == FriendEdgeDB.friend_uid,
                        reverse.friend_uid == FriendEdgeDB.owner_uid,
                    ),
                )
                .filter(FriendEdgeDB.owner_uid == owner_uid)
                .order_by(
                    FriendEdgeDB.display_name.is_(None),
                    func.lower(FriendEdgeDB.display_name),
                    FriendEdgeDB.friend_uid,
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("list_friends", owner_uid) from e
        return [row.to_pydantic().friend for row in rows]

    def upsert_many(self, edges: Iterable[FriendEdge], *, commit: bool = True) -> None:
        """Write edges keyed by (owner, friend); existing rows are overwritten."""
        edges = list(edges)
        try:
            for edge in edges:
                self.db.merge(FriendEdgeDB.from_pydantic(edge))
            if commit:
                self.db.commit()
                logger.debug(f"Wrote {len(edges)} friend edges")
            else:
                self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to write friend edges: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("write_friend_edges") from e

    def delete_pair(self, user_a: str, user_b: str, *, commit: bool = True) -> int:
        """Delete both directions between two users. Missing rows are not an error.

        Returns:
            Number of rows deleted (0, 1 or 2)
        """
        try:
            deleted = (
                self.db.query(FriendEdgeDB)
                .filter(
                    or_(
                        and_(FriendEdgeDB.owner_uid == user_a, FriendEdgeDB.friend_uid == user_b),
                        and_(FriendEdgeDB.owner_uid == user_b, FriendEdgeDB.friend_uid == user_a),
                    )
                )
                .delete(synchronize_session=False)
            )
            if commit:
                self.db.commit()
            logger.debug(f"Deleted {deleted} friend edges between {user_a} and {user_b}")
            return int(deleted)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete friend edges {user_a}/{user_b}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("delete_friend_edges", f"{user_a}/{user_b}") from e
