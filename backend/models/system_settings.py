from extensions import db
from sqlalchemy import Column, String
from utils.timezone import local_now_naive


class SystemSettings(db.Model):
    __tablename__ = 'system_settings'

    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now_naive, onupdate=local_now_naive)

    def __repr__(self):
        return f'<SystemSettings {self.key}={self.value}>'
