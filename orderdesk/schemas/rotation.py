from pydantic import BaseModel, Field
from typing import Optional, List


class RepresentativeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)


class RepresentativeResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    is_active: bool
    is_excluded: bool
    sequence_position: int

    class Config:
        from_attributes = True


class RotationResult(BaseModel):
    """Outcome of an operator action on the rotation."""
    success: bool = True
    message: str
    rep_id: Optional[int] = None
    rep_name: Optional[str] = None
    next_rep_id: Optional[int] = None
    next_rep_name: Optional[str] = None


class RotationSlot(BaseModel):
    index: int
    rep_id: int
    name: str
    sequence_position: int
    is_excluded: bool
    is_next: bool = False


class RotationState(BaseModel):
    position: int
    advance_count: int
    slots: List[RotationSlot] = []
    next_rep_id: Optional[int] = None
    next_rep_name: Optional[str] = None


class ResetRequest(BaseModel):
    confirm: bool = False
