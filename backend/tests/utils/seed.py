"""Seed data shared by API and service tests."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class School:
    admin_user: dict
    staff_user: dict
    student_user: dict
    other_student_user: dict
    teacher: dict
    student: dict
    other_student: dict
    fajr: dict
    isha: dict


def seed_school(repo) -> School:
    admin_user = repo.insert_row("users", {"name": "Amina Rahman", "email": "admin@markaz.test", "role": "admin"})
    staff_user = repo.insert_row("users", {"name": "Yusuf Karim", "email": "ustadh@markaz.test", "role": "staff"})
    student_user = repo.insert_row("users", {"name": "Bilal Ahmed", "email": "bilal@markaz.test", "role": "student"})
    other_user = repo.insert_row("users", {"name": "Maryam Idris", "email": "maryam@markaz.test", "role": "student"})
    teacher = repo.insert_row(
        "teachers", {"user_id": staff_user["id"], "subject": "Quran", "assigned_class": "Hifz 1"}
    )
    student = repo.insert_row("students", {"user_id": student_user["id"], "class": "Hifz 1", "joined_at": "2024-01-08"})
    other = repo.insert_row("students", {"user_id": other_user["id"], "class": "Hifz 2", "joined_at": "2024-02-05"})
    fajr = repo.insert_row(
        "activities", {"code": "FJR", "description": "Fajr halaqa", "start_time": "05:30", "end_time": "06:30"}
    )
    isha = repo.insert_row(
        "activities", {"code": "ISH", "description": "Isha revision", "start_time": "20:00", "end_time": "21:00"}
    )
    return School(
        admin_user=admin_user,
        staff_user=staff_user,
        student_user=student_user,
        other_student_user=other_user,
        teacher=teacher,
        student=student,
        other_student=other,
        fajr=fajr,
        isha=isha,
    )


def add_record(repo, school: School, *, day: str, grade: str, student: dict | None = None, activity: dict | None = None) -> dict:
    return repo.insert_row(
        "participation_records",
        {
            "student_id": (student or school.student)["id"],
            "teacher_id": school.teacher["id"],
            "activity_id": (activity or school.fajr)["id"],
            "date": day,
            "grade": grade,
            "remarks": None,
        },
    )
