from datetime import datetime
import os
import pytz

APP_TIMEZONE = pytz.timezone(os.environ.get('AIMS_TIMEZONE', 'Asia/Kolkata'))


def get_local_now():
    """Current time as an aware datetime in the campus timezone."""
    return datetime.now(APP_TIMEZONE)


def local_now_naive():
    """Campus-local time without tzinfo, for DateTime columns."""
    return get_local_now().replace(tzinfo=None)

