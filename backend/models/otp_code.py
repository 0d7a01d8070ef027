import enum
from extensions import db
from sqlalchemy import Column, Integer, String, DateTime
from werkzeug.security import generate_password_hash, check_password_hash
from utils.timezone import local_now_naive


class OtpPurpose(str, enum.Enum):
    LOGIN = 'LOGIN'
    SIGNUP = 'SIGNUP'


class OtpCode(db.Model):
    __tablename__ = 'otp_store'

    id = Column(Integer, primary_key=True)
    email = Column(String(120), nullable=False, index=True)
    code_hash = Column(String(256), nullable=False)
    purpose = Column(
        db.Enum(OtpPurpose, name='otp_purpose', values_callable=lambda enum: [p.value for p in enum]),
        nullable=False,
    )
    created_at = Column(DateTime, default=local_now_naive)
    expires_at = Column(DateTime, nullable=False)

    def set_code(self, code):
        self.code_hash = generate_password_hash(code)

    def check_code(self, code):
        return check_password_hash(self.code_hash, str(code or ''))

    def is_expired(self, now=None):
        return (now or local_now_naive()) > self.expires_at
