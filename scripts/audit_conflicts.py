"""Print the teacher and group double bookings stored in the configured database.

Run:
  PYTHONPATH=backend python scripts/audit_conflicts.py [--academic-year-id ID] [--institution-id ID]

Exits with status 1 when at least one conflict cluster is found.
"""

from __future__ import annotations

import argparse
import sys

from kampus.core.logging import setup_logging
from kampus.db.session import SessionLocal
from kampus.services.assignment_service import AssignmentService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--academic-year-id", default=None)
    parser.add_argument("--institution-id", default=None)
    args = parser.parse_args(argv)

    setup_logging()
    with SessionLocal() as session:
        report = AssignmentService(session).list_system_conflicts(
            academic_year_id=args.academic_year_id,
            institution_id=args.institution_id,
        )

    print(f"Active assignments scanned: {report.scanned_assignments}")
    print(f"Teacher conflicts: {len(report.teacher_conflicts)}")
    for cluster in report.teacher_conflicts:
        print(
            f"  - teacher {cluster.resource_id} on {cluster.day_of_week.value} "
            f"slot {cluster.time_slot_id}: {', '.join(cluster.assignment_ids)}"
        )
    print(f"Group conflicts: {len(report.group_conflicts)}")
    for cluster in report.group_conflicts:
        print(
            f"  - group {cluster.resource_id} on {cluster.day_of_week.value} "
            f"slot {cluster.time_slot_id}: {', '.join(cluster.assignment_ids)}"
        )
    return 1 if report.total_conflicts else 0


if __name__ == "__main__":
    sys.exit(main())
