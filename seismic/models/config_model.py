# File: seismic/models/config_model.py
from seismic import db
from seismic.clock import utcnow


class SystemConfig(db.Model):
    __tablename__ = 'system_config'

    id = db.Column(db.Integer, primary_key=True)
    config_key = db.Column(db.String(100), unique=True, nullable=False, index=True)

    # Stored as text, contacts are a JSON list
    config_value = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f'<SystemConfig {self.config_key}={self.config_value}>'
