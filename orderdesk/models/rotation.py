import json
from typing import List

from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from ..config.database import Base

CURSOR_ID = 1


class RotationCursor(Base):
    """
    Single-row rotation state.

    ``position`` indexes into the active representatives as they were ordered
    when the cursor last moved; ``snapshot`` records that ordering so a later
    change to the active set can be reconciled. ``version`` is checked on every
    UPDATE, so a writer that read a stale row fails instead of overwriting.
    """

    __tablename__ = "rotation_cursor"

    id = Column(Integer, primary_key=True, default=CURSOR_ID)
    position = Column(Integer, nullable=False, default=0)
    snapshot = Column(Text, nullable=False, default="[]")
    advance_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    @property
    def snapshot_ids(self) -> List[int]:
        return json.loads(self.snapshot or "[]")

    @snapshot_ids.setter
    def snapshot_ids(self, rep_ids: List[int]) -> None:
        self.snapshot = json.dumps(list(rep_ids))

    def __repr__(self):
        return f"<RotationCursor(position={self.position}, version={self.version})>"
