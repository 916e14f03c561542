from sqlalchemy import Column, String, Boolean, Integer, Index
from sqlalchemy.orm import relationship

from .base import BaseModel


class Representative(BaseModel):
    """Sales representative taking part in order rotation."""

    __tablename__ = "sales_reps"

    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=True)

    # Rotation membership
    is_active = Column(Boolean, default=True, nullable=False)
    is_excluded = Column(Boolean, default=False, nullable=False)
    sequence_position = Column(Integer, nullable=False, default=0)

    orders = relationship("Order", back_populates="assigned_to", lazy="dynamic")

    __table_args__ = (
        Index("idx_rep_rotation_order", "is_active", "sequence_position", "id"),
    )

    @property
    def is_eligible(self) -> bool:
        return bool(self.is_active and not self.is_excluded)

    def __repr__(self):
        return f"<Representative(id={self.id}, name='{self.name}', position={self.sequence_position})>"
