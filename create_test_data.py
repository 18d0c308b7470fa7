#!/usr/bin/env python3
"""
Create a sample roster for trying out the student records system.
"""
import random
from datetime import date, timedelta
from typing import List, Optional

from faker import Faker

from config import Config
from flat_file import FlatFileCodec
from models import MARK_COUNT, PRESENT, ABSENT, AttendanceRecord, StudentRecord
from record_store import RecordStore

CLASSES = ['9A', '9B', '10A', '10B']


def school_days(start: date, count: int) -> List[str]:
    """Return `count` Monday-Friday dates from `start` onwards."""
    days = []
    current = start
    while len(days) < count:
        if current.weekday() < 5:
            days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def create_sample_roster(count: int = 40, seed: Optional[int] = None,
                         days: int = 10, start: date = date(2024, 1, 8)) -> RecordStore:
    """Build a store with `count` students, marks and `days` of attendance."""
    fake = Faker('en_IN')
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    store = RecordStore()
    attendance_days = school_days(start, days)

    for roll_no in range(1, count + 1):
        gender = rng.choice(['Male', 'Female'])
        first_name = fake.first_name_male() if gender == 'Male' else fake.first_name_female()

        # Single token names keep the flat file readable back in.
        record = StudentRecord(
            roll_no=roll_no,
            name=first_name.replace(' ', ''),
            class_name=rng.choice(CLASSES),
            age=rng.randint(13, 17),
            gender=gender,
            marks=tuple(round(rng.uniform(35, 100), 1) for _ in range(MARK_COUNT)),
            attendance=[
                AttendanceRecord(day, PRESENT if rng.random() < 0.85 else ABSENT)
                for day in attendance_days
            ],
        )
        store.extend([record])

    return store


def main():
    store = create_sample_roster(seed=42)
    output_file = Config.STUDENTS_FILE
    result = FlatFileCodec().save(store.all(), output_file)
    if not result.ok:
        print(f"Error: could not write '{output_file}': {result.message}")
        return

    classes = sorted({r.class_name for r in store.all()})
    print(f"Sample roster created in '{output_file}'")
    print(f"Total students: {len(store)}")
    print(f"Classes: {', '.join(classes)}")


if __name__ == "__main__":
    main()
