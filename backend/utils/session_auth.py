"""Header session tokens and email OTP login/signup."""
import logging
import secrets
from datetime import timedelta
from flask import current_app
from extensions import db
from exceptions import Unauthorized, Forbidden, ValidationError, DuplicateApplication, NotFound
from models import User, Role, AccountStatus, OtpCode, OtpPurpose
from utils.notifier import EmailNotifier
from utils.timezone import local_now_naive

logger = logging.getLogger(__name__)

SIGNUP_ROLES = (Role.STUDENT, Role.INSTRUCTOR, Role.ADVISOR)


def extract_token(request):
    token = request.headers.get('X-Session-Id')
    if token:
        return token.strip()
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header[7:].strip()
    return None


def resolve(token, claimed_user_id=None):
    """Active user whose current session matches ``token``, else None."""
    if not token:
        return None
    user = User.query.filter_by(active_session_id=token).first()
    if user is None or user.account_status != AccountStatus.ACTIVE:
        return None
    if claimed_user_id is not None and str(claimed_user_id) != str(user.id):
        return None
    return user


def load_user_from_request(request):
    return resolve(extract_token(request), request.headers.get('X-User-Id'))


def issue_session(user):
    """Replace any previous session; older tokens stop resolving."""
    user.active_session_id = secrets.token_urlsafe(32)
    db.session.commit()
    logger.info('Session issued for user %s', user.id)
    return user.active_session_id


def end_session(user):
    user.active_session_id = None
    db.session.commit()


def _new_code():
    return f'{secrets.randbelow(1000000):06d}'


def _store_otp(email, purpose):
    ttl = current_app.config.get('OTP_TTL_MINUTES', 5)
    OtpCode.query.filter_by(email=email, purpose=purpose).delete()
    code = _new_code()
    record = OtpCode(email=email, purpose=purpose, expires_at=local_now_naive() + timedelta(minutes=ttl))
    record.set_code(code)
    db.session.add(record)
    db.session.commit()
    EmailNotifier.send_otp(email, code, ttl)
    return code


def _consume_otp(email, purpose, code):
    record = (OtpCode.query.filter_by(email=email, purpose=purpose)
              .order_by(OtpCode.created_at.desc()).first())
    if record is None or not record.check_code(code):
        raise Unauthorized('Invalid OTP.')
    if record.is_expired():
        db.session.delete(record)
        db.session.commit()
        raise Unauthorized('OTP has expired. Please request a new one.')
    db.session.delete(record)


def normalize_email(email):
    return str(email or '').strip().lower()


class OtpLogin:

    @staticmethod
    def request_login(email):
        email = normalize_email(email)
        user = User.query.filter_by(email=email).first()
        if user is None:
            raise NotFound('No account found for this email.')
        if user.account_status != AccountStatus.ACTIVE:
            raise Forbidden(f'Account is {user.account_status.value.lower()}.')
        _store_otp(email, OtpPurpose.LOGIN)
        logger.info('Login OTP issued for %s', email)

    @staticmethod
    def verify_login(email, code):
        email = normalize_email(email)
        _consume_otp(email, OtpPurpose.LOGIN, code)
        user = User.query.filter_by(email=email).first()
        if user is None:
            db.session.rollback()
            raise NotFound('No account found for this email.')
        if user.account_status != AccountStatus.ACTIVE:
            db.session.commit()
            raise Forbidden(f'Account is {user.account_status.value.lower()}.')
        token = issue_session(user)
        return user, token

    @staticmethod
    def _check_signup_email(email):
        domain = current_app.config.get('ALLOWED_EMAIL_DOMAIN')
        if domain and not email.endswith('@' + domain):
            raise ValidationError(f'Only @{domain} email addresses can sign up.')
        if User.query.filter_by(email=email).first() is not None:
            raise DuplicateApplication('An account with this email already exists.')

    @staticmethod
    def request_signup(email):
        email = normalize_email(email)
        OtpLogin._check_signup_email(email)
        _store_otp(email, OtpPurpose.SIGNUP)
        logger.info('Signup OTP issued for %s', email)

    @staticmethod
    def verify_signup(data, code):
        """Create a PENDING account; an admin must approve it before login."""
        email = normalize_email(data.get('email'))
        OtpLogin._check_signup_email(email)
        role = Role.parse(data.get('role'))
        if role not in SIGNUP_ROLES:
            raise ValidationError('Role must be Student, Instructor or Advisor.')
        _consume_otp(email, OtpPurpose.SIGNUP, code)
        user = User(
            email=email,
            full_name=data['full_name'].strip(),
            role=role,
            account_status=AccountStatus.PENDING,
            department=data.get('department') or None,
            batch=data.get('batch') if role == Role.STUDENT else None,
            entry_no=data.get('entry_no') if role == Role.STUDENT else None,
        )
        db.session.add(user)
        db.session.commit()
        logger.info('New %s account %s pending approval', role.value, email)
        return user
