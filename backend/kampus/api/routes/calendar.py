import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from kampus.api.deps import get_current_user, get_db, require_permissions
from kampus.core.exceptions import NotFoundError
from kampus.models.calendar import AcademicYear, Institution, Period, TimeSlot
from kampus.models.user import Permission, User
from kampus.schemas.calendar import (
    AcademicYearCreate,
    AcademicYearOut,
    InstitutionCreate,
    InstitutionOut,
    PeriodCreate,
    PeriodOut,
    PeriodUpdate,
    TimeSlotCreate,
    TimeSlotOut,
)
from kampus.services.calendar_service import validate_academic_year_dates, validate_period

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_institution(db: Session, institution_id: str) -> Institution:
    institution = db.get(Institution, institution_id)
    if institution is None:
        raise NotFoundError("Institution", institution_id)
    return institution


@router.get("/institutions", response_model=list[InstitutionOut])
def list_institutions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[InstitutionOut]:
    return list(db.execute(select(Institution).order_by(Institution.name)).scalars())


@router.post("/institutions", response_model=InstitutionOut, status_code=status.HTTP_201_CREATED)
def create_institution(
    payload: InstitutionCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> InstitutionOut:
    institution = Institution(**payload.model_dump())
    db.add(institution)
    db.commit()
    db.refresh(institution)
    return institution


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_academic_years(
    institution_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AcademicYearOut]:
    statement = select(AcademicYear).order_by(AcademicYear.start_date)
    if institution_id is not None:
        statement = statement.where(AcademicYear.institution_id == institution_id)
    return list(db.execute(statement).scalars())


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_academic_year(
    payload: AcademicYearCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    _get_institution(db, payload.institution_id)
    validate_academic_year_dates(payload.start_date, payload.end_date)
    year = AcademicYear(**payload.model_dump())
    db.add(year)
    db.commit()
    db.refresh(year)
    return year


@router.get("/academic-years/{academic_year_id}", response_model=AcademicYearOut)
def get_academic_year(
    academic_year_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    year = db.get(AcademicYear, academic_year_id)
    if year is None:
        raise NotFoundError("AcademicYear", academic_year_id)
    return year


@router.get("/academic-years/{academic_year_id}/periods", response_model=list[PeriodOut])
def list_periods(
    academic_year_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[PeriodOut]:
    if db.get(AcademicYear, academic_year_id) is None:
        raise NotFoundError("AcademicYear", academic_year_id)
    statement = select(Period).where(Period.academic_year_id == academic_year_id).order_by(Period.start_date)
    return list(db.execute(statement).scalars())


@router.post(
    "/academic-years/{academic_year_id}/periods",
    response_model=PeriodOut,
    status_code=status.HTTP_201_CREATED,
)
def create_period(
    academic_year_id: str,
    payload: PeriodCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> PeriodOut:
    validate_period(
        db,
        academic_year_id=academic_year_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    period = Period(academic_year_id=academic_year_id, **payload.model_dump())
    db.add(period)
    db.commit()
    db.refresh(period)
    return period


@router.put("/periods/{period_id}", response_model=PeriodOut)
def update_period(
    period_id: str,
    payload: PeriodUpdate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> PeriodOut:
    period = db.get(Period, period_id)
    if period is None:
        raise NotFoundError("Period", period_id)

    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "start_date" in data or "end_date" in data:
        validate_period(
            db,
            academic_year_id=period.academic_year_id,
            start_date=data.get("start_date", period.start_date),
            end_date=data.get("end_date", period.end_date),
            exclude_period_id=period.id,
        )
    for key, value in data.items():
        setattr(period, key, value)
    db.commit()
    db.refresh(period)
    return period


@router.get("/time-slots", response_model=list[TimeSlotOut])
def list_time_slots(
    institution_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimeSlotOut]:
    statement = select(TimeSlot).order_by(TimeSlot.start_time)
    if institution_id is not None:
        statement = statement.where(TimeSlot.institution_id == institution_id)
    return list(db.execute(statement).scalars())


@router.post("/time-slots", response_model=TimeSlotOut, status_code=status.HTTP_201_CREATED)
def create_time_slot(
    payload: TimeSlotCreate,
    current_user: User = Depends(require_permissions(Permission.manage_reference_data)),
    db: Session = Depends(get_db),
) -> TimeSlotOut:
    _get_institution(db, payload.institution_id)
    existing = db.execute(
        select(TimeSlot).where(
            TimeSlot.institution_id == payload.institution_id,
            TimeSlot.start_time == payload.start_time,
            TimeSlot.end_time == payload.end_time,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Time slot already exists")

    slot = TimeSlot(**payload.model_dump(), duration_minutes=payload.duration_minutes)
    db.add(slot)
    db.commit()
    db.refresh(slot)
    logger.info("Created time slot %s %s-%s", slot.id, slot.start_time, slot.end_time)
    return slot
