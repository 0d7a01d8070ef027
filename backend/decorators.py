from functools import wraps
from flask_login import current_user
from exceptions import Unauthorized, Forbidden
from models import Role


def role_required(*roles):
    """Allow the view only for an authenticated user holding one of ``roles``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise Unauthorized()
            if current_user.role not in roles:
                raise Forbidden(f'{" or ".join(r.value for r in roles)} access required.')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


student_required = role_required(Role.STUDENT)
instructor_required = role_required(Role.INSTRUCTOR)
advisor_required = role_required(Role.ADVISOR)
admin_required = role_required(Role.ADMIN)
course_approver_required = role_required(Role.ADVISOR, Role.ADMIN)
