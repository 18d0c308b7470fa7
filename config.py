import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Default admin credentials (change in production)
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', '1234')

    STUDENTS_FILE = os.environ.get('STUDENTS_FILE', 'students.txt')
    CSV_EXPORT_FILE = os.environ.get('CSV_EXPORT_FILE', 'students.csv')
    BACKUP_FOLDER = os.environ.get('BACKUP_FOLDER', 'backups')
    EXPORT_FOLDER = os.environ.get('EXPORT_FOLDER', 'exports')
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max upload

    SAVE_ON_EXIT = _env_flag('SAVE_ON_EXIT', True)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
