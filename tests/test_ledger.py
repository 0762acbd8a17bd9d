import csv
import io

from domain.constants import STATUS_PAID, STATUS_PENDING
from services.ledger import LEDGER_COLUMNS, UNRESOLVED, RegistrationLedger
from services.persistence import SERVER_TIMESTAMP


def seed(store, config):
    exams = config.collection_path('exams')
    regs = config.collection_path('registrations')
    cs101 = store.add(exams, {'name': 'Intro to Systems', 'courseCode': 'CS101', 'description': 'd',
                              'fee': 1500, 'registrationDeadline': '2025-12-01'})
    ma201 = store.add(exams, {'name': 'Linear Algebra', 'courseCode': 'MA201', 'description': 'd',
                              'fee': 800.5, 'registrationDeadline': '2025-11-15'})
    store.add(regs, {'studentId': 'S1', 'studentName': 'Jane', 'examId': cs101, 'status': STATUS_PAID,
                     'timestamp': '2025-10-01T09:00:00Z', 'paymentTimestamp': '2025-10-02T09:00:00Z'})
    store.add(regs, {'studentId': 'S2', 'studentName': 'Otieno', 'examId': ma201, 'status': STATUS_PENDING,
                     'timestamp': '2025-10-03T09:00:00Z'})
    store.add(regs, {'studentId': 'S3', 'studentName': 'Amina', 'examId': 'deleted-exam', 'status': STATUS_PAID,
                     'timestamp': SERVER_TIMESTAMP})
    return cs101, ma201


def test_rows_join_registrations_to_exams(store, config):
    seed(store, config)
    ledger = RegistrationLedger(store, config)
    rows = {r['Student ID']: r for r in ledger.rows()}

    assert rows['S1']['Exam Name'] == 'Intro to Systems'
    assert rows['S1']['Course Code'] == 'CS101'
    assert rows['S1']['Status'] == 'PAID'
    assert rows['S1']['Registration Date'] == '2025-10-01'
    assert rows['S1']['Payment Date'] == '2025-10-02'
    assert rows['S2']['Status'] == 'PENDING'
    assert rows['S3']['Exam Name'] == UNRESOLVED
    assert rows['S3']['Course Code'] == UNRESOLVED


def test_rows_refresh_on_new_registration(store, config):
    _cs101, ma201 = seed(store, config)
    ledger = RegistrationLedger(store, config)
    assert len(ledger.rows()) == 3
    store.add(config.collection_path('registrations'),
              {'studentId': 'S4', 'studentName': 'Kip', 'examId': ma201, 'status': STATUS_PENDING,
               'timestamp': SERVER_TIMESTAMP})
    assert len(ledger.rows()) == 4


def test_summary(store, config):
    seed(store, config)
    summary = RegistrationLedger(store, config).summary()
    assert summary.total_exams == 2
    assert summary.total_registrations == 3
    assert summary.paid == 2
    assert summary.pending == 1
    assert summary.unresolved == 1
    # the orphaned paid registration has no fee to count
    assert summary.fees_collected == 1500
    assert summary.by_exam == {'CS101': 1, 'MA201': 1}


def test_dataframe_and_csv_export(store, config):
    seed(store, config)
    ledger = RegistrationLedger(store, config)
    df = ledger.to_dataframe()
    assert list(df.columns) == LEDGER_COLUMNS
    assert len(df) == 3

    parsed = list(csv.DictReader(io.StringIO(ledger.export_csv())))
    assert len(parsed) == 3
    assert {r['Student Name'] for r in parsed} == {'Jane', 'Otieno', 'Amina'}


def test_empty_ledger(store, config):
    ledger = RegistrationLedger(store, config)
    assert ledger.to_dataframe().empty
    assert ledger.export_csv() == ""
    ledger.close()
    assert ledger.closed
