import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from grade_strategy import GradeStrategy, default_grade_strategy
from models import ABSENT, MARK_COUNT, PRESENT, AttendanceRecord, StudentRecord

DATE_FORMAT = '%Y-%m-%d'


def normalize_status(status: str) -> str:
    """
    Map user input to Present/Absent.
    Accepts the full words or P/A shorthand; anything else counts as absent.
    """
    value = str(status).strip()
    if value.lower() in ('p', 'present'):
        return PRESENT
    return ABSENT


def check_date(date: str) -> str:
    """
    Return the date stripped of surrounding whitespace, or raise ValueError
    unless it is a real calendar date written as YYYY-MM-DD.
    """
    value = str(date).strip()
    if datetime.strptime(value, DATE_FORMAT).strftime(DATE_FORMAT) != value:
        raise ValueError(f"date {date!r} is not in YYYY-MM-DD form")
    return value


def recompute_record(record: StudentRecord,
                     grade_strategy: GradeStrategy = default_grade_strategy) -> StudentRecord:
    """Refresh percentage, grade and gpa from the record's marks."""
    marks = tuple(float(m) for m in record.marks)
    record.marks = marks
    record.percentage = sum(marks) / len(marks) if marks else 0.0
    record.grade, record.gpa = grade_strategy(record.percentage)
    return record


class RecordStore:
    def __init__(self, grade_strategy: GradeStrategy = default_grade_strategy):
        self.logger = logging.getLogger(__name__)
        self.grade_strategy = grade_strategy
        self._records: List[StudentRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> Tuple[StudentRecord, ...]:
        """Read view of the roster in its current order."""
        return tuple(self._records)

    def recompute(self, record: StudentRecord) -> StudentRecord:
        return recompute_record(record, self.grade_strategy)

    def add(self, roll_no: int, name: str, class_name: str, age: int, gender: str) -> StudentRecord:
        """
        Create a record with zeroed marks and append it to the roster.
        Duplicate roll numbers are accepted but logged.
        """
        record = StudentRecord(
            roll_no=int(roll_no),
            name=name,
            class_name=class_name,
            age=int(age),
            gender=gender,
        )
        self._warn_if_duplicate(record.roll_no)
        self.recompute(record)
        self._records.append(record)
        self.logger.info(f"Added student {record.roll_no} ({record.name})")
        return record

    def extend(self, records: Iterable[StudentRecord]) -> int:
        added = 0
        for record in records:
            self._warn_if_duplicate(record.roll_no)
            self.recompute(record)
            self._records.append(record)
            added += 1
        return added

    def replace_all(self, records: Iterable[StudentRecord]) -> int:
        self._records = []
        return self.extend(records)

    def find(self, roll_no: int) -> Optional[StudentRecord]:
        for record in self._records:
            if record.roll_no == roll_no:
                return record
        return None

    def update(self, roll_no: int, name: str, class_name: str, age: int, gender: str) -> bool:
        record = self.find(roll_no)
        if record is None:
            return False

        record.name = name
        record.class_name = class_name
        record.age = int(age)
        record.gender = gender
        self.recompute(record)
        return True

    def set_marks(self, roll_no: int, marks: Sequence[float]) -> bool:
        if len(marks) != MARK_COUNT:
            raise ValueError(f"Expected {MARK_COUNT} marks, got {len(marks)}")

        record = self.find(roll_no)
        if record is None:
            return False

        record.marks = tuple(float(m) for m in marks)
        self.recompute(record)
        self.logger.info(f"Marks updated for {roll_no}, new grade {record.grade}")
        return True

    def mark_attendance(self, roll_no: int, date: str, status: str) -> bool:
        date = check_date(date)
        record = self.find(roll_no)
        if record is None:
            return False
        record.attendance.append(AttendanceRecord(date, normalize_status(status)))
        return True

    def mark_attendance_for_date(self, date: str, statuses: Dict[int, str]) -> int:
        """
        Append one entry per record listed in statuses, in roster order.
        Marking the same date twice appends a second entry. A date that is not
        YYYY-MM-DD raises ValueError before anything is appended.
        """
        date = check_date(date)
        marked = 0
        for record in self._records:
            if record.roll_no in statuses:
                record.attendance.append(AttendanceRecord(date, normalize_status(statuses[record.roll_no])))
                marked += 1
        self.logger.info(f"Attendance marked for {date}: {marked} students")
        return marked

    def delete(self, roll_no: int) -> bool:
        """Remove every record with this roll number."""
        remaining = [r for r in self._records if r.roll_no != roll_no]
        if len(remaining) == len(self._records):
            return False

        self.logger.info(f"Deleted {len(self._records) - len(remaining)} record(s) for {roll_no}")
        self._records = remaining
        return True

    def sort_by_roll(self) -> None:
        self._records.sort(key=lambda r: r.roll_no)

    def _warn_if_duplicate(self, roll_no: int) -> None:
        if self.find(roll_no) is not None:
            self.logger.warning(f"Duplicate roll number {roll_no} added to roster")
