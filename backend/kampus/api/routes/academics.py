from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from kampus.api.deps import get_current_user, get_db, require_permissions
from kampus.core.exceptions import NotFoundError
from kampus.models.academics import Group, Subject, Teacher
from kampus.models.calendar import Institution
from kampus.models.user import Permission, User
from kampus.schemas.academics import GroupCreate, GroupOut, SubjectCreate, SubjectOut, TeacherCreate, TeacherOut

router = APIRouter()


def _ensure_institution(db: Session, institution_id: str) -> None:
    if db.get(Institution, institution_id) is None:
        raise NotFoundError("Institution", institution_id)


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(
    institution_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TeacherOut]:
    statement = select(Teacher).order_by(Teacher.last_name, Teacher.first_name)
    if institution_id is not None:
        statement = statement.where(Teacher.institution_id == institution_id)
    return list(db.execute(statement).scalars())


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> TeacherOut:
    _ensure_institution(db, payload.institution_id)
    existing = db.execute(select(Teacher).where(Teacher.email == payload.email)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[SubjectOut]:
    return list(db.execute(select(Subject).order_by(Subject.code)).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject code already exists")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.get("/groups", response_model=list[GroupOut])
def list_groups(
    institution_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[GroupOut]:
    statement = select(Group).order_by(Group.name)
    if institution_id is not None:
        statement = statement.where(Group.institution_id == institution_id)
    return list(db.execute(statement).scalars())


@router.post("/groups", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> GroupOut:
    _ensure_institution(db, payload.institution_id)
    group = Group(**payload.model_dump())
    db.add(group)
    db.commit()
    db.refresh(group)
    return group
