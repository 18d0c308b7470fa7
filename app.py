import os
import atexit
import logging
from functools import wraps
from flask import Flask, request, jsonify, send_file, session, current_app
from werkzeug.utils import secure_filename

from attendance import AttendanceAggregator
from class_statistics import StatisticsEngine
from config import Config
from csv_handler import CsvHandler
from flat_file import FlatFileCodec
from grade_strategy import default_grade_strategy, to_five_point_scale
from models import ErrorKind
from record_store import RecordStore

ALLOWED_EXTENSIONS = {'csv'}

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EMPTY_RESULT: 404,
    ErrorKind.IO_FAILURE: 500,
    ErrorKind.PARSE_FAILURE: 400,
    ErrorKind.MALFORMED_RECORD: 400,
}


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def error_response(kind, message):
    return jsonify({'error': kind.value, 'message': message}), ERROR_STATUS[kind]


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not session.get('admin_logged_in'):
            return jsonify({'error': 'unauthorized', 'message': 'Login required'}), 401
        return view(*args, **kwargs)
    return wrapped


def get_store():
    return current_app.config['RECORD_STORE']


def student_fields(data):
    """Pull the editable student fields out of a JSON body."""
    name = str(data.get('name', '')).strip()
    class_name = str(data.get('class_name', '')).strip()
    gender = str(data.get('gender', '')).strip()
    age = int(data.get('age'))

    if not all([name, class_name, gender]):
        raise ValueError('name, class_name and gender are required')
    return name, class_name, age, gender


def load_roster(app):
    codec = app.config['FLAT_FILE_CODEC']
    path = app.config['STUDENTS_FILE']
    result = codec.load(path)
    if result.error is ErrorKind.PARSE_FAILURE:
        logging.error(f"Roster at {path} could not be decoded, starting with an empty one: {result.message}")
        return result
    if not result.ok:
        logging.info(f"No roster at {path}, starting with an empty one")
        return result
    app.config['RECORD_STORE'].replace_all(result.records)
    if result.truncated:
        logging.warning(f"Roster at {path} was truncated: {result.message}")
    return result


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config['LOG_LEVEL'])

    strategy = app.config.get('GRADE_STRATEGY', default_grade_strategy)
    aggregator = AttendanceAggregator()
    app.config['RECORD_STORE'] = RecordStore(strategy)
    app.config['FLAT_FILE_CODEC'] = FlatFileCodec(strategy)
    app.config['CSV_HANDLER'] = CsvHandler(aggregator, strategy)
    app.config['STATISTICS'] = StatisticsEngine(aggregator)
    app.config['ATTENDANCE'] = aggregator

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    os.makedirs(app.config['EXPORT_FOLDER'], exist_ok=True)

    loaded = load_roster(app)

    # Never write an empty roster over a store file that could not be decoded.
    if app.config['SAVE_ON_EXIT'] and loaded.error is not ErrorKind.PARSE_FAILURE:
        def save_on_exit():
            app.config['FLAT_FILE_CODEC'].save(app.config['RECORD_STORE'].all(), app.config['STUDENTS_FILE'])
        atexit.register(save_on_exit)

    register_routes(app)
    return app


def register_routes(app):

    @app.route('/login', methods=['POST'])
    def login():
        data = request.get_json(silent=True) or request.form
        username = data.get('username')
        password = data.get('password')
        if username == app.config['ADMIN_USERNAME'] and password == app.config['ADMIN_PASSWORD']:
            session['admin_logged_in'] = True
            return jsonify({'message': 'Logged in successfully'})
        return jsonify({'error': 'unauthorized', 'message': 'Invalid credentials'}), 401

    @app.route('/logout', methods=['POST'])
    def logout():
        session.pop('admin_logged_in', None)
        return jsonify({'message': 'Logged out'})

    @app.route('/students', methods=['GET'])
    @login_required
    def list_students():
        return jsonify([s.to_dict() for s in get_store().all()])

    @app.route('/students', methods=['POST'])
    @login_required
    def add_student():
        data = request.get_json(silent=True) or {}
        try:
            roll_no = int(data.get('roll_no'))
            name, class_name, age, gender = student_fields(data)
        except (TypeError, ValueError) as e:
            return jsonify({'error': 'invalid_input', 'message': str(e)}), 400

        store = get_store()
        duplicate = store.find(roll_no) is not None
        record = store.add(roll_no, name, class_name, age, gender)
        body = record.to_dict()
        if duplicate:
            body['warning'] = f"Roll number {roll_no} already exists"
        return jsonify(body), 201

    @app.route('/students/<int:roll_no>', methods=['GET'])
    @login_required
    def get_student(roll_no):
        record = get_store().find(roll_no)
        if record is None:
            return error_response(ErrorKind.NOT_FOUND, 'Student not found')
        body = record.to_dict()
        body['attendance_percentage'] = round(app.config['ATTENDANCE'].percentage_for(record), 2)
        return jsonify(body)

    @app.route('/students/<int:roll_no>', methods=['PUT'])
    @login_required
    def update_student(roll_no):
        data = request.get_json(silent=True) or {}
        try:
            name, class_name, age, gender = student_fields(data)
        except (TypeError, ValueError) as e:
            return jsonify({'error': 'invalid_input', 'message': str(e)}), 400

        if not get_store().update(roll_no, name, class_name, age, gender):
            return error_response(ErrorKind.NOT_FOUND, 'Student not found')
        return jsonify(get_store().find(roll_no).to_dict())

    @app.route('/students/<int:roll_no>', methods=['DELETE'])
    @login_required
    def delete_student(roll_no):
        if not get_store().delete(roll_no):
            return error_response(ErrorKind.NOT_FOUND, 'Student not found')
        return jsonify({'message': 'Student deleted successfully'})

    @app.route('/students/<int:roll_no>/marks', methods=['PUT'])
    @login_required
    def enter_marks(roll_no):
        data = request.get_json(silent=True) or {}
        try:
            marks = [float(m) for m in data.get('marks', [])]
            updated = get_store().set_marks(roll_no, marks)
        except (TypeError, ValueError) as e:
            return jsonify({'error': 'invalid_input', 'message': str(e)}), 400

        if not updated:
            return error_response(ErrorKind.NOT_FOUND, 'Student not found')
        return jsonify(get_store().find(roll_no).to_dict())

    @app.route('/students/sort', methods=['POST'])
    @login_required
    def sort_students():
        get_store().sort_by_roll()
        return jsonify({'message': 'Students sorted by roll number.'})

    @app.route('/attendance', methods=['POST'])
    @login_required
    def mark_attendance():
        data = request.get_json(silent=True) or {}
        date = str(data.get('date', '')).strip()
        try:
            statuses = {int(roll): status for roll, status in (data.get('statuses') or {}).items()}
        except (AttributeError, ValueError) as e:
            return jsonify({'error': 'invalid_input', 'message': str(e)}), 400

        if not date:
            return jsonify({'error': 'invalid_input', 'message': 'date is required'}), 400

        try:
            marked = get_store().mark_attendance_for_date(date, statuses)
        except ValueError as e:
            return jsonify({'error': 'invalid_input', 'message': str(e)}), 400
        return jsonify({'message': f'Attendance marked for {date}', 'marked': marked})

    @app.route('/attendance/<date>', methods=['GET'])
    @login_required
    def attendance_by_date(date):
        rows = app.config['ATTENDANCE'].date_report(get_store().all(), date)
        if not rows:
            return error_response(ErrorKind.EMPTY_RESULT, f'No attendance records found for {date}')
        return jsonify(rows)

    @app.route('/attendance/monthly/<month_year>', methods=['GET'])
    @login_required
    def monthly_attendance(month_year):
        rows = app.config['ATTENDANCE'].monthly_report(get_store().all(), month_year)
        if not rows:
            return error_response(ErrorKind.EMPTY_RESULT, f'No attendance records found for {month_year}')
        return jsonify(rows)

    @app.route('/gpa', methods=['GET'])
    @login_required
    def gpa_report():
        return jsonify(app.config['STATISTICS'].gpa_report(get_store().all()))

    @app.route('/classes/<class_name>/statistics', methods=['GET'])
    @login_required
    def class_statistics(class_name):
        stats = app.config['STATISTICS'].summarize(get_store().all(), class_name)
        if stats is None:
            return error_response(ErrorKind.EMPTY_RESULT, f'No students found in class {class_name}')
        return jsonify(stats.to_dict())

    @app.route('/classes/<class_name>/topper', methods=['GET'])
    @login_required
    def class_topper(class_name):
        topper = app.config['STATISTICS'].find_topper(get_store().all(), class_name)
        if topper is None:
            return error_response(ErrorKind.EMPTY_RESULT, f'No students found in class {class_name}')
        body = topper.to_dict()
        body['gpa5'] = round(to_five_point_scale(topper.gpa), 2)
        body['attendance_percentage'] = round(app.config['ATTENDANCE'].percentage_for(topper), 2)
        return jsonify(body)

    @app.route('/classes/<class_name>/report', methods=['GET'])
    @login_required
    def class_report(class_name):
        rows = app.config['STATISTICS'].class_report(get_store().all(), class_name)
        if not rows:
            return error_response(ErrorKind.EMPTY_RESULT, f'No students found in class {class_name}')
        return jsonify(rows)

    @app.route('/classes/<class_name>/report.xlsx', methods=['GET'])
    @login_required
    def class_report_excel(class_name):
        filename = secure_filename(f"class_{class_name}_report.xlsx")
        filepath = os.path.abspath(os.path.join(app.config['EXPORT_FOLDER'], filename))
        exported = app.config['CSV_HANDLER'].export_class_report(get_store().all(), class_name, filepath)
        if exported is None:
            return error_response(ErrorKind.EMPTY_RESULT, f'No students found in class {class_name}')
        return send_file(exported, as_attachment=True, download_name=filename)

    @app.route('/save', methods=['POST'])
    @login_required
    def save():
        result = app.config['FLAT_FILE_CODEC'].save(get_store().all(), app.config['STUDENTS_FILE'])
        if not result.ok:
            return error_response(result.error, result.message)
        return jsonify({'message': 'Data saved successfully.', 'path': result.path})

    @app.route('/backup', methods=['POST'])
    @login_required
    def backup():
        result = app.config['FLAT_FILE_CODEC'].backup(get_store().all(), app.config['BACKUP_FOLDER'])
        if not result.ok:
            return error_response(result.error, result.message)
        return jsonify({'message': f'Backup created successfully: {os.path.basename(result.path)}',
                        'path': result.path})

    @app.route('/export/csv', methods=['GET'])
    @login_required
    def export_csv():
        path = os.path.abspath(app.config['CSV_EXPORT_FILE'])
        result = app.config['CSV_HANDLER'].export_csv(get_store().all(), path)
        if not result.ok:
            return error_response(result.error, result.message)
        return send_file(path, as_attachment=True, download_name=os.path.basename(path))

    @app.route('/import/csv', methods=['POST'])
    @login_required
    def import_csv():
        if 'file' in request.files:
            file = request.files['file']
            if not file.filename or not allowed_file(file.filename):
                return jsonify({'error': 'invalid_input', 'message': 'Please upload a .csv file'}), 400
            filepath = os.path.join(app.config['UPLOAD_FOLDER'], secure_filename(file.filename))
            file.save(filepath)
        else:
            data = request.get_json(silent=True) or {}
            filepath = str(data.get('path', '')).strip()
            if not filepath:
                return jsonify({'error': 'invalid_input', 'message': 'No file selected'}), 400

        result = app.config['CSV_HANDLER'].import_csv(filepath)
        if not result.ok:
            return error_response(result.error, result.message)

        imported = get_store().extend(result.records)
        return jsonify({'message': f'Data imported successfully from {os.path.basename(filepath)}',
                        'imported': imported})


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000, debug=True)
