import logging
import os
from datetime import datetime
from typing import Iterable, List, Optional

from grade_strategy import GradeStrategy, default_grade_strategy
from models import MARK_COUNT, AttendanceRecord, ErrorKind, LoadResult, OperationResult, StudentRecord
from record_store import recompute_record

DEFAULT_STORE_PATH = 'students.txt'

# name roll class age gender + marks + attendance count
FIXED_FIELDS = 5 + MARK_COUNT + 1


class MalformedRecordError(ValueError):
    pass


def backup_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return now.strftime('backup_%Y%m%d_%H%M%S.txt')


def format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class FlatFileCodec:
    """
    Whitespace-delimited roster store, one student per line:

        name roll class age gender m0 m1 m2 m3 m4 n [date status]*n gpa

    Fields are written unquoted, so names or classes containing spaces will
    not read back correctly. The gpa on disk is informational: every record
    is recomputed from its marks as it is decoded.
    """

    def __init__(self, grade_strategy: GradeStrategy = default_grade_strategy):
        self.logger = logging.getLogger(__name__)
        self.grade_strategy = grade_strategy

    def encode_record(self, record: StudentRecord) -> str:
        fields = [record.name, str(record.roll_no), record.class_name, str(record.age), record.gender]
        fields.extend(format_number(mark) for mark in record.marks)
        fields.append(str(len(record.attendance)))
        for entry in record.attendance:
            fields.extend([entry.date, entry.status])
        fields.append(f"{record.gpa:.2f}")
        return ' '.join(fields)

    def save(self, records: Iterable[StudentRecord], path: str = DEFAULT_STORE_PATH) -> OperationResult:
        try:
            lines = [self.encode_record(record) + '\n' for record in records]
            with open(path, 'w', encoding='utf-8') as f:
                f.writelines(lines)
        except OSError as e:
            self.logger.error(f"Error saving roster to {path}: {str(e)}")
            return OperationResult(ok=False, error=ErrorKind.IO_FAILURE, message=str(e), path=path)

        self.logger.info(f"Saved {len(lines)} students to {path}")
        return OperationResult(ok=True, message=f"Saved {len(lines)} students", path=path)

    def backup(self, records: Iterable[StudentRecord], directory: str = '.',
               now: Optional[datetime] = None) -> OperationResult:
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Error creating backup folder {directory}: {str(e)}")
            return OperationResult(ok=False, error=ErrorKind.IO_FAILURE, message=str(e), path=directory)
        return self.save(records, os.path.join(directory, backup_filename(now)))

    def decode(self, text: str) -> LoadResult:
        """
        Read records until the tokens run out. A record that cannot be read in
        full ends the load; everything before it is kept.
        """
        tokens = text.split()
        records: List[StudentRecord] = []
        pos = 0

        while pos < len(tokens):
            try:
                record, pos = self._decode_record(tokens, pos)
            except MalformedRecordError as e:
                self.logger.warning(f"Stopped reading at record {len(records) + 1}: {str(e)}")
                return LoadResult(records=records, error=ErrorKind.MALFORMED_RECORD, message=str(e))
            records.append(record)

        return LoadResult(records=records)

    def load(self, path: str = DEFAULT_STORE_PATH) -> LoadResult:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            self.logger.warning(f"Could not read roster from {path}: {str(e)}")
            return LoadResult(ok=False, error=ErrorKind.IO_FAILURE, message=str(e))
        except UnicodeDecodeError as e:
            self.logger.error(f"Roster at {path} is not valid UTF-8: {str(e)}")
            return LoadResult(ok=False, error=ErrorKind.PARSE_FAILURE, message=str(e))

        result = self.decode(text)
        self.logger.info(f"Loaded {len(result.records)} students from {path}")
        return result

    def _decode_record(self, tokens: List[str], pos: int):
        if len(tokens) - pos < FIXED_FIELDS:
            raise MalformedRecordError(f"expected at least {FIXED_FIELDS} fields, found {len(tokens) - pos}")

        name, roll, class_name, age, gender = tokens[pos:pos + 5]
        raw_marks = tokens[pos + 5:pos + 5 + MARK_COUNT]
        raw_count = tokens[pos + 5 + MARK_COUNT]
        pos += FIXED_FIELDS

        try:
            roll_no = int(roll)
            age_value = int(age)
            marks = tuple(float(m) for m in raw_marks)
            count = int(raw_count)
        except ValueError as e:
            raise MalformedRecordError(str(e)) from e

        if count < 0 or len(tokens) - pos < count * 2 + 1:
            raise MalformedRecordError(f"attendance count {count} does not match the remaining fields")

        attendance = [AttendanceRecord(tokens[pos + 2 * i], tokens[pos + 2 * i + 1]) for i in range(count)]
        pos += count * 2

        try:
            gpa = float(tokens[pos])
        except ValueError as e:
            raise MalformedRecordError(str(e)) from e
        pos += 1

        record = StudentRecord(
            roll_no=roll_no,
            name=name,
            class_name=class_name,
            age=age_value,
            gender=gender,
            marks=marks,
            gpa=gpa,
            attendance=attendance,
        )
        return recompute_record(record, self.grade_strategy), pos

