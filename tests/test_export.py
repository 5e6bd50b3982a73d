import csv
import datetime
import io

from openpyxl import load_workbook

from services.demo import seed_history
from utils.export import EXPORT_HEADERS, records_to_csv, records_to_xlsx


def _records(services):
    seed_history(services.ledger, services.directory, datetime.date(2024, 9, 2), days=2)
    return services.ledger.filter()


def test_csv_has_header_and_one_row_per_record(services):
    records = _records(services)
    rows = list(csv.reader(io.StringIO(records_to_csv(records))))

    assert rows[0] == EXPORT_HEADERS
    assert len(rows) == len(records) + 1
    assert rows[1][1] in {'2024-0001', '2024-0002'}
    assert rows[1][4] in {'08:00 AM', '08:15 AM'}
    assert rows[1][7] == 'Yes'


def test_xlsx_workbook(services):
    records = _records(services)
    workbook = load_workbook(records_to_xlsx(records))
    sheet = workbook.active

    assert sheet.title == 'Attendance'
    assert [cell.value for cell in sheet[1]] == EXPORT_HEADERS
    assert sheet[1][0].font.bold
    assert sheet.max_row == len(records) + 1
