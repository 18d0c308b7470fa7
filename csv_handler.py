import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
import os
import logging
from typing import Iterable, List, Optional

from attendance import AttendanceAggregator
from class_statistics import StatisticsEngine
from grade_strategy import GradeStrategy, default_grade_strategy
from models import MARK_COUNT, ErrorKind, ImportResult, OperationResult, StudentRecord
from record_store import recompute_record

DEFAULT_CSV_PATH = 'students.csv'

EXPORT_COLUMNS = ['Roll', 'Name', 'Class', 'Age', 'Gender', 'Percentage', 'Grade', 'GPA', 'Attendance%']


class CsvParseError(ValueError):
    pass


class CsvHandler:
    def __init__(self, aggregator: Optional[AttendanceAggregator] = None,
                 grade_strategy: GradeStrategy = default_grade_strategy):
        self.logger = logging.getLogger(__name__)
        self.grade_strategy = grade_strategy
        self.aggregator = aggregator or AttendanceAggregator()
        self.statistics = StatisticsEngine(self.aggregator)

    def to_dataframe(self, records: Iterable[StudentRecord]) -> pd.DataFrame:
        rows = []
        for record in records:
            rows.append([
                record.roll_no,
                record.name,
                record.class_name,
                record.age,
                record.gender,
                f"{record.percentage:.2f}",
                record.grade,
                f"{record.gpa:.2f}",
                f"{self.aggregator.percentage_for(record):.2f}%",
            ])
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    def export_csv(self, records: Iterable[StudentRecord], path: str = DEFAULT_CSV_PATH) -> OperationResult:
        """
        Write the roster as CSV.
        Columns: Roll, Name, Class, Age, Gender, Percentage, Grade, GPA, Attendance%
        """
        df = self.to_dataframe(records)
        try:
            df.to_csv(path, index=False, lineterminator='\n')
        except OSError as e:
            self.logger.error(f"Error exporting CSV to {path}: {str(e)}")
            return OperationResult(ok=False, error=ErrorKind.IO_FAILURE, message=str(e), path=path)

        self.logger.info(f"Exported {len(df)} students to {path}")
        return OperationResult(ok=True, message=f"Data exported to {path}", path=path)

    def import_csv(self, path: str) -> ImportResult:
        """
        Read students from a CSV laid out like the export.

        The first line is always treated as a header. Only the first eight
        columns are used; attendance is not read back. Any unparseable row
        fails the whole import so nothing partial reaches the roster.
        """
        try:
            df = pd.read_csv(path, header=None, skiprows=1, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            self.logger.info(f"No rows to import from {path}")
            return ImportResult(records=[])
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            self.logger.error(f"Error parsing CSV file {path}: {str(e)}")
            return ImportResult(ok=False, error=ErrorKind.PARSE_FAILURE, message=str(e))
        except OSError as e:
            self.logger.error(f"Failed to open file {path}: {str(e)}")
            return ImportResult(ok=False, error=ErrorKind.IO_FAILURE, message=str(e))

        records: List[StudentRecord] = []
        try:
            for row_number, (_, row) in enumerate(df.iterrows(), 1):
                records.append(self._parse_row(row, row_number))
        except CsvParseError as e:
            self.logger.error(f"Import of {path} aborted: {str(e)}")
            return ImportResult(ok=False, error=ErrorKind.PARSE_FAILURE, message=str(e))

        self.logger.info(f"Data imported successfully from {path}: {len(records)} students")
        return ImportResult(records=records)

    def _parse_row(self, row: pd.Series, row_number: int) -> StudentRecord:
        def cell(index: int) -> str:
            value = row.get(index)
            return value.strip() if isinstance(value, str) else ''

        def number(index: int, column: str, convert):
            try:
                return convert(cell(index))
            except ValueError:
                raise CsvParseError(f"row {row_number}: {column} value {cell(index)!r} is not a number")

        roll_no = number(0, 'Roll', int)
        age = number(3, 'Age', int)
        percentage = number(5, 'Percentage', float)
        number(7, 'GPA', float)

        # Marks are not part of the CSV; spread the percentage over them and
        # derive grade and gpa from it. The Grade/GPA columns are not trusted.
        record = StudentRecord(
            roll_no=roll_no,
            name=cell(1),
            class_name=cell(2),
            age=age,
            gender=cell(4),
            marks=(percentage,) * MARK_COUNT,
        )
        return recompute_record(record, self.grade_strategy)

    def export_class_report(self, records: Iterable[StudentRecord], class_name: str, path: str) -> Optional[str]:
        """
        Export one class's report card sheet to Excel.
        """
        records = list(records)
        rows = self.statistics.class_report(records, class_name)
        stats = self.statistics.summarize(records, class_name)
        if stats is None:
            self.logger.info(f"No students found in class {class_name}")
            return None

        wb = Workbook()
        ws = wb.active
        ws.title = f"Class {class_name}"[:31]

        header_font = Font(bold=True, size=12)
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        center_alignment = Alignment(horizontal='center', vertical='center')

        ws['A1'] = f"Class Report - {class_name}"
        ws['A1'].font = Font(bold=True, size=14)
        ws.merge_cells('A1:F1')

        headers = ['Roll', 'Name', 'Grade', 'Percentage', 'GPA', 'Attendance%']
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=3, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = border
            cell.alignment = center_alignment

        row_num = 4
        for row in rows:
            values = [
                row['roll_no'],
                row['name'],
                row['grade'],
                round(row['percentage'], 2),
                round(row['gpa'], 2),
                f"{row['attendance']:.2f}%",
            ]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = border
                cell.alignment = center_alignment
                if row['grade'] == 'F':
                    cell.fill = PatternFill(start_color="FFE6E6", end_color="FFE6E6", fill_type="solid")
            row_num += 1

        ws.cell(row=row_num + 1, column=1, value="Summary:").font = Font(bold=True)
        summary = [
            f"Total Students: {stats.count}",
            f"Average Percentage: {stats.average_percentage:.2f}%",
            f"Average GPA (4.0 scale): {stats.average_gpa:.2f}",
            f"Average GPA (5.0 scale): {stats.average_gpa_five_scale:.2f}",
            f"Average Attendance: {stats.average_attendance:.2f}%",
        ]
        summary.extend(f"Grade {grade}: {count} students" for grade, count in stats.grade_distribution.items())
        for offset, line in enumerate(summary, 2):
            ws.cell(row=row_num + offset, column=1, value=line)

        for col_idx in range(1, len(headers) + 1):
            max_length = 0
            column_letter = get_column_letter(col_idx)
            for row_idx in range(3, row_num):
                value = ws.cell(row=row_idx, column=col_idx).value
                if value is not None:
                    max_length = max(max_length, len(str(value)))
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

        try:
            folder = os.path.dirname(path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            wb.save(path)
        except OSError as e:
            self.logger.error(f"Error exporting class report: {str(e)}")
            return None

        self.logger.info(f"Exported class report for {class_name} to {path}")
        return path

