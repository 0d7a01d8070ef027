from extensions import db
from models import SystemSettings

COURSE_REGISTRATION = 'course_registration'
GRADE_SUBMISSION = 'grade_submission'
KNOWN_FLAGS = (COURSE_REGISTRATION, GRADE_SUBMISSION)


def get_flag(key, default=True):
    """Read a boolean window flag; a missing row means the window is open."""
    setting = db.session.get(SystemSettings, key)
    if setting is None:
        return default
    return setting.value.strip().lower() == 'true'


def set_flag(key, is_open):
    setting = db.session.get(SystemSettings, key)
    if setting is None:
        setting = SystemSettings(key=key, value=str(bool(is_open)).lower())
        db.session.add(setting)
    else:
        setting.value = str(bool(is_open)).lower()
    db.session.commit()
    return setting


def all_flags():
    settings = {key: True for key in KNOWN_FLAGS}
    for setting in SystemSettings.query.all():
        settings[setting.key] = setting.value.strip().lower() == 'true'
    return settings
