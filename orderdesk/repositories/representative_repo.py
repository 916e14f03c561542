from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func

from .base import CRUDBase
from ..models.representative import Representative
from ..schemas.rotation import RepresentativeCreate


class RepRegistry(CRUDBase[Representative, RepresentativeCreate, RepresentativeCreate]):
    """
    Representatives as the rotation sees them.

    The rotation order is ``sequence_position`` ascending with ``id`` as the
    tie-break, over active representatives only. Excluded representatives
    keep their slot in this ordering; skipping them is the assigner's job.
    """

    def __init__(self):
        super().__init__(Representative)

    def _active_query(self, db: Session):
        return (
            db.query(Representative)
            .filter(Representative.is_active.is_(True))
            .order_by(Representative.sequence_position.asc(), Representative.id.asc())
            .populate_existing()
        )

    def list_rotation_slots(self, db: Session) -> List[Representative]:
        """Active representatives in rotation order, excluded ones included."""
        return self._active_query(db).all()

    def list_active_ordered(self, db: Session) -> List[int]:
        """
        Ids of active, non-excluded representatives in rotation order.

        This is the read view offered to callers outside the rotation; the
        assigner itself walks ``list_rotation_slots`` so excluded reps keep
        their place.
        """
        return [
            rep.id for rep in
            self._active_query(db).filter(Representative.is_excluded.is_(False)).all()
        ]

    def max_sequence_position(self, db: Session) -> int:
        return db.query(func.coalesce(func.max(Representative.sequence_position), 0)).scalar()

    def register(self, db: Session, *, obj_in: RepresentativeCreate, commit: bool = True) -> Representative:
        """New representatives join at the end of the rotation."""
        data = obj_in.model_dump()
        data["sequence_position"] = self.max_sequence_position(db) + 1
        data["is_active"] = True
        data["is_excluded"] = False
        return self.create(db, obj_in=data, commit=commit)

    def set_active(self, db: Session, rep: Representative, active: bool) -> Representative:
        if active and not rep.is_active:
            # Reactivated representatives go to the back of the line
            rep.sequence_position = self.max_sequence_position(db) + 1
        rep.is_active = active
        db.flush()
        return rep

    def set_excluded(self, db: Session, rep: Representative, excluded: bool) -> Representative:
        rep.is_excluded = excluded
        db.flush()
        return rep

    def clear_exclusions(self, db: Session) -> int:
        excluded = db.query(Representative).filter(Representative.is_excluded.is_(True)).all()
        for rep in excluded:
            rep.is_excluded = False
        db.flush()
        return len(excluded)

    def get_by_email(self, db: Session, email: str) -> Optional[Representative]:
        return db.query(Representative).filter(Representative.email == email).first()


rep_registry = RepRegistry()
