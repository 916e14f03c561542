from fastapi import APIRouter, Depends, status

from ....core.dependencies import get_assigner, require_admin
from ....schemas.actor import Actor
from ....schemas.rotation import (
    RepresentativeCreate, RepresentativeResponse, ResetRequest, RotationResult, RotationState,
)
from ....services.rotation_service import RoundRobinAssigner
from ....utils.retry import retry_on_conflict

router = APIRouter()


@router.get("/", response_model=RotationState)
def get_rotation(
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    """Rotation order and who receives the next order."""
    return assigner.state()


@router.post("/skip", response_model=RotationResult)
@retry_on_conflict()
def skip_next(
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.skip()


@router.post("/reset", response_model=RotationResult)
@retry_on_conflict()
def reset_rotation(
    request: ResetRequest,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.reset(confirm=request.confirm)


@router.post("/reps", response_model=RepresentativeResponse, status_code=status.HTTP_201_CREATED)
def add_representative(
    rep: RepresentativeCreate,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    created = assigner.add_representative(rep.name, rep.email)
    return RepresentativeResponse.model_validate(created)


@router.post("/reps/{rep_id}/include", response_model=RotationResult)
@retry_on_conflict()
def include_rep(
    rep_id: int,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.include(rep_id)


@router.post("/reps/{rep_id}/exclude", response_model=RotationResult)
@retry_on_conflict()
def exclude_rep(
    rep_id: int,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.exclude(rep_id)


@router.post("/reps/{rep_id}/deactivate", response_model=RotationResult)
@retry_on_conflict()
def deactivate_rep(
    rep_id: int,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.deactivate(rep_id)


@router.post("/reps/{rep_id}/reactivate", response_model=RotationResult)
@retry_on_conflict()
def reactivate_rep(
    rep_id: int,
    assigner: RoundRobinAssigner = Depends(get_assigner),
    admin: Actor = Depends(require_admin),
):
    return assigner.reactivate(rep_id)
