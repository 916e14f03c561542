import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from ..models.rotation import RotationCursor, CURSOR_ID
from ..core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class RotationCursorRepository:
    """Access to the single rotation cursor row."""

    def get(self, db: Session) -> RotationCursor:
        cursor = db.get(RotationCursor, CURSOR_ID)
        return cursor if cursor is not None else RotationCursor(id=CURSOR_ID, position=0, snapshot="[]", advance_count=0)

    def lock(self, db: Session) -> RotationCursor:
        """
        Load the cursor for update, creating it on first use.

        Holds the row lock (SELECT ... FOR UPDATE on PostgreSQL; the SQLite
        write lock is already taken by BEGIN IMMEDIATE) until the caller's
        transaction ends.
        """
        cursor = (
            db.query(RotationCursor)
            .filter(RotationCursor.id == CURSOR_ID)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if cursor is not None:
            return cursor

        cursor = RotationCursor(id=CURSOR_ID, position=0, snapshot="[]", advance_count=0)
        try:
            with db.begin_nested():
                db.add(cursor)
        except IntegrityError:
            logger.info("Rotation cursor created concurrently, reloading")
            cursor = (
                db.query(RotationCursor)
                .filter(RotationCursor.id == CURSOR_ID)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
            if cursor is None:
                raise ConflictError("Rotation cursor could not be initialized", resource="rotation_cursor")
        return cursor


rotation_cursor_repo = RotationCursorRepository()
