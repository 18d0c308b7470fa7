import io

from app import create_app


def add(client, roll_no, name='Alice', class_name='10A', age=15, gender='Female'):
    return client.post('/students', json={
        'roll_no': roll_no, 'name': name, 'class_name': class_name, 'age': age, 'gender': gender,
    })


def test_routes_require_login(app):
    client = app.test_client()
    assert client.get('/students').status_code == 401


def test_bad_credentials(app):
    client = app.test_client()
    response = client.post('/login', json={'username': 'admin', 'password': 'wrong'})
    assert response.status_code == 401


def test_credentials_come_from_config(tmp_path):
    app = create_app({
        'TESTING': True,
        'ADMIN_USERNAME': 'registrar',
        'ADMIN_PASSWORD': 's3cret',
        'STUDENTS_FILE': str(tmp_path / 'students.txt'),
        'EXPORT_FOLDER': str(tmp_path / 'exports'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SAVE_ON_EXIT': False,
    })
    client = app.test_client()
    assert client.post('/login', json={'username': 'admin', 'password': '1234'}).status_code == 401
    assert client.post('/login', json={'username': 'registrar', 'password': 's3cret'}).status_code == 200
    assert client.get('/students').status_code == 200


def test_logout(client):
    client.post('/logout')
    assert client.get('/students').status_code == 401


def test_add_and_get_student(client):
    response = add(client, 1)
    assert response.status_code == 201
    assert response.get_json()['grade'] == 'F'

    body = client.get('/students/1').get_json()
    assert body['name'] == 'Alice'
    assert body['attendance_percentage'] == 0.0


def test_add_duplicate_warns(client):
    add(client, 1)
    response = add(client, 1, name='Again')
    assert response.status_code == 201
    assert 'warning' in response.get_json()
    assert len(client.get('/students').get_json()) == 2


def test_add_rejects_bad_age(client):
    response = add(client, 1, age='old')
    assert response.status_code == 400


def test_missing_student_is_404(client):
    assert client.get('/students/9').status_code == 404
    assert client.delete('/students/9').status_code == 404
    response = client.put('/students/9', json={'name': 'X', 'class_name': 'Y', 'age': 1, 'gender': 'Z'})
    assert response.status_code == 404
    assert response.get_json()['error'] == 'not_found'


def test_update_and_marks(client):
    add(client, 1)
    response = client.put('/students/1', json={'name': 'Alicia', 'class_name': '10B', 'age': 16, 'gender': 'Female'})
    assert response.get_json()['class_name'] == '10B'

    response = client.put('/students/1/marks', json={'marks': [95, 92, 88, 91, 90]})
    body = response.get_json()
    assert body['percentage'] == 91.2
    assert body['grade'] == 'A'
    assert body['gpa'] == 4.0

    assert client.put('/students/1/marks', json={'marks': [1, 2]}).status_code == 400


def test_delete_student(client):
    add(client, 1)
    assert client.delete('/students/1').status_code == 200
    assert client.get('/students').get_json() == []


def test_sort(client):
    add(client, 3)
    add(client, 1)
    client.post('/students/sort')
    assert [s['roll_no'] for s in client.get('/students').get_json()] == [1, 3]


def test_attendance_flow(client):
    add(client, 1)
    add(client, 2, name='Bob')
    client.post('/attendance', json={'date': '2024-01-10', 'statuses': {'1': 'P', '2': 'A'}})
    client.post('/attendance', json={'date': '2024-01-11', 'statuses': {'1': 'A'}})

    rows = client.get('/attendance/2024-01-10').get_json()
    assert rows == [
        {'roll_no': 1, 'name': 'Alice', 'status': 'Present'},
        {'roll_no': 2, 'name': 'Bob', 'status': 'Absent'},
    ]

    monthly = client.get('/attendance/monthly/01-2024').get_json()
    assert monthly[0] == {'roll_no': 1, 'name': 'Alice', 'present': 1, 'absent': 1, 'percentage': 50.0}

    assert client.get('/attendance/2030-01-01').status_code == 404
    assert client.get('/attendance/monthly/02-2024').get_json()['error'] == 'empty_result'


def test_attendance_requires_date(client):
    assert client.post('/attendance', json={'statuses': {}}).status_code == 400


def test_class_views(client):
    add(client, 1)
    add(client, 2, name='Bob')
    client.put('/students/1/marks', json={'marks': [95, 92, 88, 91, 90]})
    client.put('/students/2/marks', json={'marks': [50, 60, 55, 58, 52]})

    stats = client.get('/classes/10A/statistics').get_json()
    assert stats['count'] == 2
    assert stats['grade_distribution'] == {'A': 1, 'F': 1}

    topper = client.get('/classes/10A/topper').get_json()
    assert topper['roll_no'] == 1
    assert topper['gpa5'] == 5.0

    assert len(client.get('/classes/10A/report').get_json()) == 2
    assert client.get('/classes/9Z/statistics').status_code == 404
    assert client.get('/classes/9Z/topper').status_code == 404
    assert client.get('/classes/9Z/report').status_code == 404

    gpa = client.get('/gpa').get_json()
    assert gpa[0]['gpa5'] == 5.0


def test_class_report_download(client):
    add(client, 1)
    response = client.get('/classes/10A/report.xlsx')
    assert response.status_code == 200
    assert response.data[:2] == b'PK'
    assert client.get('/classes/9Z/report.xlsx').status_code == 404


def test_save_and_reload(app, client):
    add(client, 1)
    client.put('/students/1/marks', json={'marks': [95, 92, 88, 91, 90]})
    assert client.post('/save').status_code == 200

    reopened = create_app({
        'TESTING': True,
        'STUDENTS_FILE': app.config['STUDENTS_FILE'],
        'EXPORT_FOLDER': app.config['EXPORT_FOLDER'],
        'UPLOAD_FOLDER': app.config['UPLOAD_FOLDER'],
        'SAVE_ON_EXIT': False,
    })
    record = reopened.config['RECORD_STORE'].find(1)
    assert record.grade == 'A'


def test_backup(client):
    add(client, 1)
    response = client.post('/backup')
    assert response.status_code == 200
    assert response.get_json()['message'].startswith('Backup created successfully: backup_')


def test_export_csv(client):
    add(client, 1)
    response = client.get('/export/csv')
    assert response.status_code == 200
    assert response.data.decode().splitlines()[1] == '1,Alice,10A,15,Female,0.00,F,0.00,0.00%'


def test_import_csv_upload(client):
    data = {'file': (io.BytesIO(b'Roll,Name,Class,Age,Gender,Percentage,Grade,GPA\n'
                                b'7,Ravi,9A,14,Male,72.00,C,2.00\n'), 'roster.csv')}
    response = client.post('/import/csv', data=data, content_type='multipart/form-data')

    assert response.status_code == 200
    assert response.get_json()['imported'] == 1
    assert client.get('/students/7').get_json()['grade'] == 'C'


def test_import_csv_parse_failure_keeps_roster(client):
    add(client, 1)
    data = {'file': (io.BytesIO(b'Roll,Name,Class,Age,Gender,Percentage,Grade,GPA\n'
                                b'7,Ravi,9A,old,Male,72.00,C,2.00\n'), 'roster.csv')}
    response = client.post('/import/csv', data=data, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'parse_failure'
    assert [s['roll_no'] for s in client.get('/students').get_json()] == [1]


def test_import_csv_missing_path(client, tmp_path):
    response = client.post('/import/csv', json={'path': str(tmp_path / 'nope.csv')})
    assert response.status_code == 500
    assert response.get_json()['error'] == 'io_failure'


def test_import_rejects_other_extensions(client):
    data = {'file': (io.BytesIO(b'x'), 'roster.xlsx')}
    response = client.post('/import/csv', data=data, content_type='multipart/form-data')
    assert response.status_code == 400


def test_attendance_rejects_malformed_date(client):
    add(client, 1)
    response = client.post('/attendance', json={'date': '2024-01 -12', 'statuses': {'1': 'P'}})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_input'
    assert client.get('/students/1').get_json()['attendance'] == []


def test_undecodable_store_starts_empty_without_autosave(tmp_path, monkeypatch):
    store_file = tmp_path / 'students.txt'
    store_file.write_bytes(b'Jos\xe9 1 10A 15 Male 95 92 88 91 90 0 4.00\n')
    registered = []
    monkeypatch.setattr('app.atexit.register', registered.append)

    app = create_app({
        'TESTING': True,
        'STUDENTS_FILE': str(store_file),
        'EXPORT_FOLDER': str(tmp_path / 'exports'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SAVE_ON_EXIT': True,
    })

    assert len(app.config['RECORD_STORE']) == 0
    assert registered == []
    assert store_file.read_bytes().startswith(b'Jos\xe9')


def test_store_is_autosaved_when_it_loads(tmp_path, monkeypatch):
    registered = []
    monkeypatch.setattr('app.atexit.register', registered.append)

    create_app({
        'TESTING': True,
        'STUDENTS_FILE': str(tmp_path / 'students.txt'),
        'EXPORT_FOLDER': str(tmp_path / 'exports'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SAVE_ON_EXIT': True,
    })

    assert len(registered) == 1
