import enum
from extensions import db
from flask_login import UserMixin
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from utils.timezone import local_now_naive


class Role(str, enum.Enum):
    STUDENT = 'Student'
    INSTRUCTOR = 'Instructor'
    ADVISOR = 'Advisor'
    ADMIN = 'Admin'

    @classmethod
    def parse(cls, value):
        """Map a client-supplied role string onto a Role, or None."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for role in cls:
            if role.value.lower() == text:
                return role
        return None


class AccountStatus(str, enum.Enum):
    PENDING = 'PENDING'
    ACTIVE = 'ACTIVE'
    BLOCKED = 'BLOCKED'
    REJECTED = 'REJECTED'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = Column('user_id', Integer, primary_key=True)
    email = Column(String(120), unique=True, nullable=False)
    full_name = Column(String(120), nullable=False)
    role = Column(
        db.Enum(Role, name='user_role', values_callable=lambda enum: [r.value for r in enum]),
        nullable=False,
    )
    account_status = Column(
        db.Enum(AccountStatus, name='account_status', values_callable=lambda enum: [s.value for s in enum]),
        nullable=False,
        default=AccountStatus.PENDING,
    )
    department = Column(String(50), nullable=True)
    batch = Column(String(10), nullable=True)  # students only
    entry_no = Column(String(20), nullable=True)  # students only
    advisor_id = Column(Integer, ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True)
    active_session_id = Column(String(128), unique=True, nullable=True)
    created_at = Column(DateTime, default=local_now_naive)

    advisor = db.relationship('User', remote_side=[id], backref='advisees')

    def __repr__(self):
        return f'<User {self.id}: {self.email} ({self.role.value if self.role else "?"})>'

    @property
    def user_id(self):
        return self.id

    @property
    def is_active(self):
        return self.account_status == AccountStatus.ACTIVE

    def to_dict(self):
        return {
            'user_id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role.value,
            'account_status': self.account_status.value,
            'department': self.department,
            'batch': self.batch,
            'entry_no': self.entry_no,
            'advisor_id': self.advisor_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
