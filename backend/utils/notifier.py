import logging
from smtplib import SMTPException
from flask import current_app
from flask_mail import Message, BadHeaderError
from extensions import mail

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'PENDING_INSTRUCTOR_APPROVAL': 'Your application has been submitted and is awaiting instructor approval.',
    'PENDING_ADVISOR_APPROVAL': 'The instructor approved your application. It is now awaiting advisor approval.',
    'ENROLLED': 'Your advisor approved your application. You are now enrolled.',
    'INSTRUCTOR_REJECTED': 'Your application was rejected by the instructor.',
    'ADVISOR_REJECTED': 'Your application was rejected by your advisor.',
    'DROPPED_BY_STUDENT': 'You have dropped this course.',
}

ACCOUNT_MESSAGES = {
    'APPROVED': ('Account Approved', 'Your account has been approved by the Admin. You can now login to the AIMS Portal.'),
    'REJECTED': ('Account Application Status', 'We regret to inform you that your account application has been rejected.'),
    'BLOCKED': ('Account Suspended', 'Your account has been temporarily blocked by the Administrator. Please contact support.'),
    'REMOVED': ('Account Removed', 'Your account has been removed from the AIMS Portal.'),
}

PROGRAM_MESSAGES = {
    'APPROVED': 'Your application for {program} has been approved.',
    'REJECTED': 'Your application for {program} has been rejected.',
}


class EmailNotifier:
    """Outbound email for workflow events.

    Sending never raises: a failed notification is logged and the caller's
    already-committed transition stands.
    """

    @staticmethod
    def send(to_email, subject, body):
        if not to_email:
            return False
        config = current_app.config
        if not config.get('MAIL_SUPPRESS_SEND') and not config.get('MAIL_SERVER'):
            logger.info('Mail server not configured, skipping "%s" to %s', subject, to_email)
            return False
        message = Message(subject=subject, recipients=[to_email], body=body)
        try:
            mail.send(message)
        except (SMTPException, BadHeaderError, OSError):
            logger.warning('Failed to send "%s" to %s', subject, to_email, exc_info=True)
            return False
        logger.info('Sent "%s" to %s', subject, to_email)
        return True

    @staticmethod
    def send_otp(email, code, ttl_minutes):
        body = f'Your One-Time Password (OTP) is: {code}\n\nThis code is valid for {ttl_minutes} minutes.\nIf you did not request this, please ignore this email.'
        return EmailNotifier.send(email, 'Your Login OTP', body)

    @staticmethod
    def send_enrollment_status(student, course, status):
        text = STATUS_MESSAGES.get(status.value if hasattr(status, 'value') else status)
        if not text or student is None or course is None:
            return False
        body = f'Dear {student.full_name},\n\n{course.course_code} - {course.title}: {text}\n\nRegards,\nAcademic Administration'
        return EmailNotifier.send(student.email, f'Enrollment update: {course.course_code}', body)

    @staticmethod
    def send_account_status(email, action):
        if action not in ACCOUNT_MESSAGES:
            return False
        subject, body = ACCOUNT_MESSAGES[action]
        return EmailNotifier.send(email, subject, body)

    @staticmethod
    def send_program_status(student, program):
        template = PROGRAM_MESSAGES.get(program.status.value)
        if not template or student is None:
            return False
        body = f'Dear {student.full_name},\n\n{template.format(program=program.program_type.value)}\n\nRegards,\nAcademic Administration'
        return EmailNotifier.send(student.email, 'Degree Program Application', body)
