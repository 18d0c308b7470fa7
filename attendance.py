import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from models import StudentRecord


@dataclass
class MonthlySummary:
    present: int
    absent: int
    percentage: float


def month_key(date: str) -> str:
    """Turn a YYYY-MM-DD date into the MM-YYYY form used for monthly reports."""
    return f"{date[5:7]}-{date[0:4]}"


class AttendanceAggregator:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def percentage_for(self, record: StudentRecord) -> float:
        if not record.attendance:
            return 0.0
        present = sum(1 for entry in record.attendance if entry.is_present)
        return present / len(record.attendance) * 100

    def by_date(self, record: StudentRecord, date: str) -> Optional[str]:
        """Status of the first entry for `date`, or None if the student has none."""
        for entry in record.attendance:
            if entry.date == date:
                return entry.status
        return None

    def monthly_summary(self, record: StudentRecord, month_year: str) -> Optional[MonthlySummary]:
        entries = [e for e in record.attendance if month_key(e.date) == month_year]
        if not entries:
            return None

        present = sum(1 for e in entries if e.is_present)
        return MonthlySummary(
            present=present,
            absent=len(entries) - present,
            percentage=present / len(entries) * 100,
        )

    def date_report(self, roster: Iterable[StudentRecord], date: str) -> List[Dict]:
        rows = []
        for record in roster:
            status = self.by_date(record, date)
            if status is not None:
                rows.append({'roll_no': record.roll_no, 'name': record.name, 'status': status})
        return rows

    def monthly_report(self, roster: Iterable[StudentRecord], month_year: str) -> List[Dict]:
        """
        Per-student present/absent counts for one month.
        Students without any entry in that month are left out.
        """
        rows = []
        for record in roster:
            summary = self.monthly_summary(record, month_year)
            if summary is None:
                continue
            rows.append({
                'roll_no': record.roll_no,
                'name': record.name,
                'present': summary.present,
                'absent': summary.absent,
                'percentage': summary.percentage,
            })
        return rows

