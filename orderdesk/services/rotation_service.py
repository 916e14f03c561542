import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..config.database import DatabaseTransaction
from ..core.exceptions import ConflictError, NoEligibleRepError, ValidationError
from ..models.representative import Representative
from ..models.rotation import RotationCursor
from ..repositories.representative_repo import rep_registry
from ..repositories.rotation_repo import rotation_cursor_repo
from ..schemas.rotation import RepresentativeCreate, RotationResult, RotationSlot, RotationState

logger = logging.getLogger(__name__)


class RoundRobinAssigner:
    """
    Hands out representatives in rotating order.

    Slots are the active representatives ordered by sequence position, with
    excluded representatives keeping their slot. The cursor points at the next
    slot to try; excluded slots are passed over without being assigned. Every
    operation takes the cursor lock first and ends its own transaction unless
    told otherwise, so concurrent callers are serialized on the cursor row.
    """

    def __init__(self, db: Session):
        self.db = db
        self.registry = rep_registry
        self.cursor_repo = rotation_cursor_repo

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def next(self, commit: bool = True) -> int:
        """
        Return the representative to receive the next order and advance past them.

        With ``commit=False`` the advance joins the caller's transaction, so a
        caller that later fails and rolls back does not use up the slot.
        """
        if not commit:
            return self._advance().id

        with DatabaseTransaction(self.db):
            rep_id = self._advance().id
        return rep_id

    def skip(self) -> RotationResult:
        """Pass over the representative who is next in line."""
        with DatabaseTransaction(self.db):
            cursor, slots, index = self._locked_slots()
            if not slots:
                raise NoEligibleRepError("No representatives in rotation to skip")
            position = self._find_eligible(slots, index)
            skipped = slots[position]
            new_position = (position + 1) % len(slots)
            self._move(cursor, slots, new_position)

            upcoming = slots[self._find_eligible(slots, new_position)]
            logger.info(f"Rotation skipped rep {skipped.id}; next up rep {upcoming.id}")
            result = RotationResult(
                message=f"Skipped {skipped.name}. Next up: {upcoming.name}",
                rep_id=skipped.id,
                rep_name=skipped.name,
                next_rep_id=upcoming.id,
                next_rep_name=upcoming.name,
            )
        return result

    # ------------------------------------------------------------------
    # Operator controls
    # ------------------------------------------------------------------

    def exclude(self, rep_id: int) -> RotationResult:
        return self._set_excluded(rep_id, True)

    def include(self, rep_id: int) -> RotationResult:
        return self._set_excluded(rep_id, False)

    def reset(self, confirm: bool = False) -> RotationResult:
        """
        Rebuild the rotation alphabetically by name and start from the top.

        Sequence positions become 1..n for the active representatives, every
        exclusion is cleared and the cursor returns to the first slot.
        """
        if not confirm:
            raise ValidationError("Resetting the rotation must be confirmed", field="confirm")

        with DatabaseTransaction(self.db):
            cursor = self.cursor_repo.lock(self.db)
            cleared = self.registry.clear_exclusions(self.db)
            ordered = sorted(
                self.registry.list_rotation_slots(self.db),
                key=lambda rep: (rep.name.casefold(), rep.id),
            )
            for position, rep in enumerate(ordered, start=1):
                rep.sequence_position = position
            cursor.position = 0
            cursor.snapshot_ids = [rep.id for rep in ordered]
            self._flush()

            first = ordered[0] if ordered else None
            logger.info(f"Rotation reset: {len(ordered)} reps resequenced, {cleared} exclusions cleared")
            result = RotationResult(
                message=f"Round-robin reset with {len(ordered)} representatives in alphabetical order",
                next_rep_id=first.id if first else None,
                next_rep_name=first.name if first else None,
            )
        return result

    def add_representative(self, name: str, email: Optional[str] = None) -> Representative:
        """Register a representative at the end of the rotation."""
        with DatabaseTransaction(self.db):
            self.cursor_repo.lock(self.db)
            if email and self.registry.get_by_email(self.db, email) is not None:
                raise ValidationError(f"A representative with email {email} already exists", field="email")
            rep = self.registry.register(self.db, obj_in=RepresentativeCreate(name=name, email=email), commit=False)
            logger.info(f"Registered rep {rep.id} ({rep.name}) at position {rep.sequence_position}")
        return rep

    def deactivate(self, rep_id: int) -> RotationResult:
        return self._set_active(rep_id, False)

    def reactivate(self, rep_id: int) -> RotationResult:
        return self._set_active(rep_id, True)

    def state(self) -> RotationState:
        """Current rotation order and who is next, without moving the cursor."""
        with DatabaseTransaction(self.db):
            cursor = self.cursor_repo.get(self.db)
            slots = self.registry.list_rotation_slots(self.db)
            index = self._reconcile(cursor, [rep.id for rep in slots])
            try:
                next_position = self._find_eligible(slots, index) if slots else None
            except NoEligibleRepError:
                next_position = None

            next_rep = slots[next_position] if next_position is not None else None
            state = RotationState(
                position=index,
                advance_count=cursor.advance_count or 0,
                slots=[
                    RotationSlot(
                        index=i,
                        rep_id=rep.id,
                        name=rep.name,
                        sequence_position=rep.sequence_position,
                        is_excluded=rep.is_excluded,
                        is_next=(i == next_position),
                    )
                    for i, rep in enumerate(slots)
                ],
                next_rep_id=next_rep.id if next_rep else None,
                next_rep_name=next_rep.name if next_rep else None,
            )
        return state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(self) -> Representative:
        cursor, slots, index = self._locked_slots()
        if not slots:
            raise NoEligibleRepError()
        position = self._find_eligible(slots, index)
        self._move(cursor, slots, (position + 1) % len(slots))
        rep = slots[position]
        logger.info(f"Rotation slot {position} assigned to rep {rep.id} (advance #{cursor.advance_count})")
        return rep

    def _locked_slots(self) -> Tuple[RotationCursor, List[Representative], int]:
        cursor = self.cursor_repo.lock(self.db)
        slots = self.registry.list_rotation_slots(self.db)
        return cursor, slots, self._reconcile(cursor, [rep.id for rep in slots])

    @staticmethod
    def _reconcile(cursor: RotationCursor, slot_ids: List[int]) -> int:
        """
        Map the stored cursor onto the current slot list.

        When the active set changed since the cursor last moved, the cursor
        follows the representative it was pointing at; if that one is gone it
        moves to the next survivor from the old ordering, and failing that it
        is clamped to the first slot.
        """
        if not slot_ids:
            return 0
        position = cursor.position or 0
        previous = cursor.snapshot_ids
        if previous == slot_ids:
            return position if position < len(slot_ids) else 0

        if previous:
            start = position if position < len(previous) else 0
            for offset in range(len(previous)):
                rep_id = previous[(start + offset) % len(previous)]
                if rep_id in slot_ids:
                    return slot_ids.index(rep_id)

        return position if position < len(slot_ids) else 0

    @staticmethod
    def _find_eligible(slots: List[Representative], index: int) -> int:
        # one pass over the slots at most
        for offset in range(len(slots)):
            position = (index + offset) % len(slots)
            if slots[position].is_eligible:
                return position
        raise NoEligibleRepError()

    def _move(self, cursor: RotationCursor, slots: List[Representative], position: int) -> None:
        cursor.position = position
        cursor.snapshot_ids = [rep.id for rep in slots]
        cursor.advance_count = (cursor.advance_count or 0) + 1
        self._flush()

    def _flush(self) -> None:
        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConflictError("Rotation cursor was modified concurrently", resource="rotation_cursor") from e

    def _peek(self, cursor: RotationCursor) -> Optional[Representative]:
        slots = self.registry.list_rotation_slots(self.db)
        if not slots:
            return None
        try:
            return slots[self._find_eligible(slots, self._reconcile(cursor, [rep.id for rep in slots]))]
        except NoEligibleRepError:
            return None

    def _get_rep(self, rep_id: int) -> Representative:
        return self.registry.get_or_404(self.db, rep_id)

    def _set_excluded(self, rep_id: int, excluded: bool) -> RotationResult:
        verb = "excluded from" if excluded else "included in"
        with DatabaseTransaction(self.db):
            cursor = self.cursor_repo.lock(self.db)
            rep = self._get_rep(rep_id)
            if rep.is_excluded == excluded:
                message = f"{rep.name} is already {verb} round-robin"
            else:
                self.registry.set_excluded(self.db, rep, excluded)
                message = f"{rep.name} {verb} round-robin"
                logger.info(f"Rep {rep.id} {verb} rotation")
            result = self._result(message, rep, self._peek(cursor))
        return result

    def _set_active(self, rep_id: int, active: bool) -> RotationResult:
        with DatabaseTransaction(self.db):
            cursor = self.cursor_repo.lock(self.db)
            rep = self._get_rep(rep_id)
            if rep.is_active == active:
                message = f"{rep.name} is already {'active' if active else 'inactive'}"
            else:
                self.registry.set_active(self.db, rep, active)
                if active:
                    message = f"{rep.name} reactivated at the end of the rotation"
                else:
                    message = f"{rep.name} deactivated and removed from the rotation"
                logger.info(f"Rep {rep.id} {'reactivated' if active else 'deactivated'}")
            result = self._result(message, rep, self._peek(cursor))
        return result

    @staticmethod
    def _result(message: str, rep: Representative, upcoming: Optional[Representative]) -> RotationResult:
        return RotationResult(
            message=message,
            rep_id=rep.id,
            rep_name=rep.name,
            next_rep_id=upcoming.id if upcoming else None,
            next_rep_name=upcoming.name if upcoming else None,
        )
