from kampus.models.academics import Group, Subject, Teacher  # noqa: F401
from kampus.models.activity_log import ActivityLog  # noqa: F401
from kampus.models.assignment import Assignment, AssignmentStatus  # noqa: F401
from kampus.models.calendar import (  # noqa: F401
    AcademicYear,
    AcademicYearStatus,
    DayOfWeek,
    Institution,
    Period,
    TimeSlot,
)
from kampus.models.user import Permission, User, UserRole  # noqa: F401
