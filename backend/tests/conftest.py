import os
import tempfile
from datetime import date
from types import SimpleNamespace

# Settings are cached at import time; point them at a throwaway database first.
_TMP_DIR = tempfile.mkdtemp(prefix="kampus-tests-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{os.path.join(_TMP_DIR, 'runtime.db')}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kampus.api.deps import get_db  # noqa: E402
from kampus.core.security import create_access_token, get_password_hash  # noqa: E402
from kampus.db.base import Base  # noqa: E402
from kampus.main import app  # noqa: E402
from kampus.models.academics import Group, Subject, Teacher  # noqa: E402
from kampus.models.calendar import AcademicYear, Institution, Period, TimeSlot  # noqa: E402
from kampus.models.user import User, UserRole  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def reference(db_session):
    """One institution with a 2027 academic year, two terms, slots, teachers, subjects and groups."""
    institution = Institution(name="Colegio Central", acronym="CC")
    other_institution = Institution(name="Colegio Norte", acronym="CN")
    db_session.add_all([institution, other_institution])
    db_session.flush()

    year = AcademicYear(
        institution_id=institution.id,
        name="2027",
        start_date=date(2027, 3, 1),
        end_date=date(2027, 12, 17),
    )
    other_year = AcademicYear(
        institution_id=other_institution.id,
        name="2027 Norte",
        start_date=date(2027, 3, 1),
        end_date=date(2027, 12, 17),
    )
    db_session.add_all([year, other_year])
    db_session.flush()

    first_term = Period(
        academic_year_id=year.id, name="First term", start_date=date(2027, 3, 1), end_date=date(2027, 7, 16)
    )
    second_term = Period(
        academic_year_id=year.id, name="Second term", start_date=date(2027, 8, 2), end_date=date(2027, 12, 17)
    )
    slot_1 = TimeSlot(institution_id=institution.id, name="First", start_time="07:00", end_time="07:45", duration_minutes=45)
    slot_2 = TimeSlot(institution_id=institution.id, name="Second", start_time="07:45", end_time="08:30", duration_minutes=45)
    teacher_1 = Teacher(institution_id=institution.id, first_name="Ana", last_name="Quispe", email="ana@example.com")
    teacher_2 = Teacher(institution_id=institution.id, first_name="Luis", last_name="Huaman", email="luis@example.com")
    teacher_3 = Teacher(institution_id=institution.id, first_name="Rosa", last_name="Mamani", email="rosa@example.com")
    math = Subject(name="Mathematics", code="MAT")
    language = Subject(name="Communication", code="COM")
    group_a = Group(institution_id=institution.id, name="1A", grade="1")
    group_b = Group(institution_id=institution.id, name="1B", grade="1")
    group_c = Group(institution_id=institution.id, name="1C", grade="1")
    db_session.add_all(
        [first_term, second_term, slot_1, slot_2, teacher_1, teacher_2, teacher_3, math, language, group_a, group_b, group_c]
    )
    db_session.commit()

    return SimpleNamespace(
        institution_id=institution.id,
        other_institution_id=other_institution.id,
        year_id=year.id,
        other_year_id=other_year.id,
        first_term_id=first_term.id,
        second_term_id=second_term.id,
        slot_1=slot_1.id,
        slot_2=slot_2.id,
        teacher_1=teacher_1.id,
        teacher_2=teacher_2.id,
        teacher_3=teacher_3.id,
        math=math.id,
        language=language.id,
        group_a=group_a.id,
        group_b=group_b.id,
        group_c=group_c.id,
    )


@pytest.fixture()
def draft_values(reference):
    """Build assignment payload dicts; keyword overrides replace single fields."""

    def build(**overrides) -> dict:
        values = {
            "teacher_id": reference.teacher_1,
            "subject_id": reference.math,
            "group_id": reference.group_a,
            "time_slot_id": reference.slot_1,
            "day_of_week": "monday",
            "academic_year_id": reference.year_id,
            "period_id": reference.first_term_id,
        }
        values.update(overrides)
        return values

    return build


@pytest.fixture()
def make_user(db_session):
    def create(role: UserRole, email: str | None = None) -> User:
        user = User(
            name=f"{role.value.title()} User",
            email=email or f"{role.value}@example.com",
            hashed_password=get_password_hash("Secret123!"),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return create


@pytest.fixture()
def auth_headers(make_user):
    def headers_for(role: UserRole = UserRole.coordinator) -> dict[str, str]:
        user = make_user(role)
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return headers_for
