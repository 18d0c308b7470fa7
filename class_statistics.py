import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from attendance import AttendanceAggregator
from grade_strategy import to_five_point_scale
from models import StudentRecord


@dataclass
class ClassStats:
    class_name: str
    count: int
    average_percentage: float
    average_gpa: float
    average_gpa_five_scale: float
    average_attendance: float
    grade_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'class_name': self.class_name,
            'count': self.count,
            'average_percentage': round(self.average_percentage, 2),
            'average_gpa': round(self.average_gpa, 2),
            'average_gpa_five_scale': round(self.average_gpa_five_scale, 2),
            'average_attendance': round(self.average_attendance, 2),
            'grade_distribution': dict(self.grade_distribution),
        }


class StatisticsEngine:
    def __init__(self, aggregator: Optional[AttendanceAggregator] = None):
        self.logger = logging.getLogger(__name__)
        self.aggregator = aggregator or AttendanceAggregator()

    def summarize(self, roster: Iterable[StudentRecord], class_name: str) -> Optional[ClassStats]:
        """
        Averages and grade distribution for one class.
        Returns None when nobody on the roster is in that class.
        """
        members = [r for r in roster if r.class_name == class_name]
        if not members:
            self.logger.debug(f"No students found in class {class_name}")
            return None

        count = len(members)
        average_gpa = sum(r.gpa for r in members) / count
        grades = Counter(r.grade for r in members)

        return ClassStats(
            class_name=class_name,
            count=count,
            average_percentage=sum(r.percentage for r in members) / count,
            average_gpa=average_gpa,
            average_gpa_five_scale=to_five_point_scale(average_gpa),
            average_attendance=sum(self.aggregator.percentage_for(r) for r in members) / count,
            grade_distribution={grade: grades[grade] for grade in sorted(grades)},
        )

    def find_topper(self, roster: Iterable[StudentRecord], class_name: str) -> Optional[StudentRecord]:
        # Strictly greater, so the first of several tied students wins.
        topper = None
        for record in roster:
            if record.class_name != class_name:
                continue
            if topper is None or record.percentage > topper.percentage:
                topper = record
        return topper

    def class_report(self, roster: Iterable[StudentRecord], class_name: str) -> List[Dict]:
        rows = []
        for record in roster:
            if record.class_name != class_name:
                continue
            rows.append({
                'roll_no': record.roll_no,
                'name': record.name,
                'grade': record.grade,
                'percentage': record.percentage,
                'gpa': record.gpa,
                'attendance': self.aggregator.percentage_for(record),
            })
        return rows

    def gpa_report(self, roster: Iterable[StudentRecord]) -> List[Dict]:
        return [
            {'name': r.name, 'gpa': r.gpa, 'gpa5': to_five_point_scale(r.gpa)}
            for r in roster
        ]
