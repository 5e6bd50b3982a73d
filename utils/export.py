import csv
import io
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

EXPORT_HEADERS = [
    'Date', 'Student ID', 'Student Name', 'Status', 'Check In', 'Check Out', 'Location', 'SMS Sent',
]


def _time(value):
    return value.strftime('%I:%M %p') if value else ''


def record_row(record):
    return [
        record.date,
        record.student_id,
        record.student.full_name,
        record.status.value.capitalize(),
        _time(record.check_in_time),
        _time(record.check_out_time),
        record.location,
        'Yes' if record.sms_notification_sent else 'No',
    ]


def records_to_csv(records) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for record in records:
        writer.writerow(record_row(record))
    return output.getvalue()


def records_to_xlsx(records, title='Attendance') -> BytesIO:
    """Attendance records as an XLSX workbook with a bold header and auto-fit column widths."""
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.append(EXPORT_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for record in records:
        ws.append(record_row(record))

    for col_num in range(1, len(EXPORT_HEADERS) + 1):
        max_length = 0
        column_letter = get_column_letter(col_num)
        for row in ws.iter_rows(min_col=col_num, max_col=col_num):
            for cell in row:
                if cell.value:
                    max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    excel_buffer = BytesIO()
    wb.save(excel_buffer)
    excel_buffer.seek(0)
    return excel_buffer
