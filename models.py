# In-memory data model for the student roster.
# Records live in a RecordStore for the lifetime of a session and are
# persisted through the flat-file codec (students.txt) or exported to CSV.

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

MARK_COUNT = 5

PRESENT = 'Present'
ABSENT = 'Absent'


class ErrorKind(Enum):
    NOT_FOUND = 'not_found'
    EMPTY_RESULT = 'empty_result'
    IO_FAILURE = 'io_failure'
    PARSE_FAILURE = 'parse_failure'
    MALFORMED_RECORD = 'malformed_record'


@dataclass(frozen=True)
class AttendanceRecord:
    date: str  # YYYY-MM-DD
    status: str  # Present / Absent

    @property
    def is_present(self) -> bool:
        return self.status == PRESENT


@dataclass
class StudentRecord:
    """
    One student on the roster.

    percentage, grade and gpa are derived from marks. Only RecordStore.recompute
    should write them, so a record read from the store is never stale.
    """
    roll_no: int
    name: str
    class_name: str
    age: int
    gender: str
    marks: Tuple[float, ...] = (0.0,) * MARK_COUNT
    percentage: float = 0.0
    grade: str = 'F'
    gpa: float = 0.0
    attendance: List[AttendanceRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'roll_no': self.roll_no,
            'name': self.name,
            'class_name': self.class_name,
            'age': self.age,
            'gender': self.gender,
            'marks': list(self.marks),
            'percentage': round(self.percentage, 2),
            'grade': self.grade,
            'gpa': round(self.gpa, 2),
            'attendance': [{'date': a.date, 'status': a.status} for a in self.attendance],
        }


@dataclass
class OperationResult:
    ok: bool
    error: Optional[ErrorKind] = None
    message: str = ''
    path: Optional[str] = None


@dataclass
class LoadResult:
    """Outcome of reading the flat-file store. ok is False when the file cannot be read or decoded."""
    records: List[StudentRecord] = field(default_factory=list)
    ok: bool = True
    error: Optional[ErrorKind] = None
    message: str = ''

    @property
    def truncated(self) -> bool:
        return self.error is ErrorKind.MALFORMED_RECORD


@dataclass
class ImportResult:
    records: List[StudentRecord] = field(default_factory=list)
    ok: bool = True
    error: Optional[ErrorKind] = None
    message: str = ''
