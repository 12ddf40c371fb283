from fastapi import APIRouter, Depends, Query, status

from kampus.api.deps import get_assignment_service, require_permissions
from kampus.models.assignment import AssignmentStatus
from kampus.models.user import Permission, User
from kampus.schemas.assignment import AssignmentCreate, AssignmentOut, AssignmentUpdate
from kampus.schemas.conflict import ConflictCheck, ConflictReport
from kampus.services.assignment_service import AssignmentService

router = APIRouter()


@router.get("/", response_model=list[AssignmentOut])
def list_assignments(
    teacher_id: str | None = None,
    subject_id: str | None = None,
    group_id: str | None = None,
    academic_year_id: str | None = None,
    period_id: str | None = None,
    status_filter: AssignmentStatus | None = Query(default=None, alias="status"),
    institution_id: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentOut]:
    return service.list_assignments(
        teacher_id=teacher_id,
        subject_id=subject_id,
        group_id=group_id,
        academic_year_id=academic_year_id,
        period_id=period_id,
        status=status_filter,
        institution_id=institution_id,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    payload: AssignmentCreate,
    current_user: User = Depends(require_permissions(Permission.create_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentOut:
    return service.create(payload)


@router.post("/check", response_model=ConflictCheck)
def check_assignment(
    payload: AssignmentCreate,
    exclude_id: str | None = None,
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> ConflictCheck:
    result = service.check(payload, exclude_id=exclude_id)
    return ConflictCheck(
        teacher_conflict=result.teacher_conflict,
        group_conflict=result.group_conflict,
        conflicts=result.entries(),
    )


@router.get("/conflicts", response_model=ConflictReport)
def list_conflicts(
    academic_year_id: str | None = None,
    institution_id: str | None = None,
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> ConflictReport:
    return service.list_system_conflicts(academic_year_id=academic_year_id, institution_id=institution_id)


@router.get("/group/{group_id}", response_model=list[AssignmentOut])
def list_group_schedule(
    group_id: str,
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentOut]:
    return service.list_for_group(group_id)


@router.get("/teacher/{teacher_id}", response_model=list[AssignmentOut])
def list_teacher_schedule(
    teacher_id: str,
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentOut]:
    return service.list_for_teacher(teacher_id)


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: str,
    current_user: User = Depends(require_permissions(Permission.view_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentOut:
    return service.get(assignment_id)


@router.put("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    current_user: User = Depends(require_permissions(Permission.update_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentOut:
    return service.update(assignment_id, payload)


@router.delete("/{assignment_id}")
def delete_assignment(
    assignment_id: str,
    current_user: User = Depends(require_permissions(Permission.delete_assignments)),
    service: AssignmentService = Depends(get_assignment_service),
) -> dict:
    service.delete(assignment_id)
    return {"success": True}
