# File: seismic/models/event_model.py
from seismic import db
from seismic.clock import utcnow, isoformat


class EventType:
    VIBRATION = 'vibration'
    EARTHQUAKE = 'earthquake'

    ALL = (VIBRATION, EARTHQUAKE)


class SeismicEvent(db.Model):
    __tablename__ = 'seismic_events'
    __table_args__ = (
        db.CheckConstraint("event_type IN ('vibration', 'earthquake')", name='ck_event_type'),
        db.Index('ix_seismic_events_type_timestamp', 'event_type', 'timestamp'),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    device_id = db.Column(db.String(100), nullable=False, index=True)

    # Instant of the reading, naive UTC
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    acceleration_x = db.Column(db.Float, nullable=False)
    acceleration_y = db.Column(db.Float, nullable=False)
    acceleration_z = db.Column(db.Float, nullable=False)
    total_acceleration = db.Column(db.Float, nullable=False)

    event_type = db.Column(db.String(20), nullable=False)
    magnitude = db.Column(db.Float, nullable=False)

    # Each flag goes from False to True once
    processed = db.Column(db.Boolean, nullable=False, default=False)
    notification_sent = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    analyses = db.relationship(
        'AftershockAnalysis', backref='main_event', lazy=True,
        order_by='AftershockAnalysis.sequence'
    )
    notifications = db.relationship('NotificationRecord', backref='event', lazy=True)

    @property
    def is_earthquake(self):
        return self.event_type == EventType.EARTHQUAKE

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'timestamp': isoformat(self.timestamp),
            'acceleration_x': self.acceleration_x,
            'acceleration_y': self.acceleration_y,
            'acceleration_z': self.acceleration_z,
            'total_acceleration': self.total_acceleration,
            'event_type': self.event_type,
            'magnitude': self.magnitude,
            'processed': self.processed,
            'notification_sent': self.notification_sent,
        }

    def __repr__(self):
        return f'<SeismicEvent #{self.id} {self.event_type} | {self.total_acceleration:.2f} m/s²>'


class AftershockAnalysis(db.Model):
    __tablename__ = 'aftershock_analyses'
    __table_args__ = (
        db.UniqueConstraint('main_event_id', 'sequence', name='uq_analysis_event_sequence'),
    )

    id = db.Column(db.Integer, primary_key=True)
    main_event_id = db.Column(db.Integer, db.ForeignKey('seismic_events.id'), nullable=False, index=True)

    # Re-analysis appends, the highest sequence is the current analysis
    sequence = db.Column(db.Integer, nullable=False, default=1)

    probability_percentage = db.Column(db.Float, nullable=False)
    factors = db.Column(db.JSON, nullable=False, default=list)

    computed_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    def is_active(self, now=None):
        return (now or utcnow()) < self.expires_at

    def to_dict(self):
        return {
            'id': self.id,
            'main_event_id': self.main_event_id,
            'sequence': self.sequence,
            'probability_percentage': self.probability_percentage,
            'factors': list(self.factors or []),
            'computed_at': isoformat(self.computed_at),
            'expires_at': isoformat(self.expires_at),
        }

    def __repr__(self):
        return f'<AftershockAnalysis event={self.main_event_id} seq={self.sequence} p={self.probability_percentage}>'
