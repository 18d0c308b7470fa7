import pytest

from app import create_app
from record_store import RecordStore


@pytest.fixture
def store():
    """A small roster across two classes with some attendance."""
    store = RecordStore()
    store.add(1, 'Alice', '10A', 15, 'Female')
    store.set_marks(1, [95, 92, 88, 91, 90])
    store.mark_attendance(1, '2024-01-10', 'Present')
    store.mark_attendance(1, '2024-01-11', 'Absent')

    store.add(2, 'Bob', '10A', 16, 'Male')
    store.set_marks(2, [50, 60, 55, 58, 52])
    store.mark_attendance(2, '2024-01-10', 'Present')

    store.add(3, 'Chitra', '10B', 15, 'Female')
    store.set_marks(3, [80, 85, 82, 84, 79])
    return store


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'STUDENTS_FILE': str(tmp_path / 'students.txt'),
        'CSV_EXPORT_FILE': str(tmp_path / 'students.csv'),
        'BACKUP_FOLDER': str(tmp_path / 'backups'),
        'EXPORT_FOLDER': str(tmp_path / 'exports'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SAVE_ON_EXIT': False,
    })
    return app


@pytest.fixture
def client(app):
    client = app.test_client()
    response = client.post('/login', json={'username': 'admin', 'password': '1234'})
    assert response.status_code == 200
    return client
