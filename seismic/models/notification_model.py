# File: seismic/models/notification_model.py
from seismic import db
from seismic.clock import utcnow, isoformat


class Channel:
    WHATSAPP = 'whatsapp'


class NotificationStatus:
    PENDING = 'pending'
    SENT = 'sent'
    FAILED = 'failed'


class NotificationRecord(db.Model):
    __tablename__ = 'notification_records'
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'sent', 'failed')", name='ck_notification_status'),
        db.Index('ix_notification_status_sent_at', 'status', 'sent_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('seismic_events.id'), nullable=False, index=True)

    channel = db.Column(db.String(20), nullable=False, default=Channel.WHATSAPP)
    recipient = db.Column(db.String(50), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # pending -> sent | failed, never reopened
    status = db.Column(db.String(20), nullable=False, default=NotificationStatus.PENDING)
    sent_at = db.Column(db.DateTime, nullable=True)
    error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault('channel', Channel.WHATSAPP)
        kwargs.setdefault('status', NotificationStatus.PENDING)
        super().__init__(**kwargs)

    def mark_sent(self, when):
        if self.status != NotificationStatus.PENDING:
            raise ValueError(f'notification {self.id} is already {self.status}')
        self.status = NotificationStatus.SENT
        self.sent_at = when

    def mark_failed(self, error):
        if self.status != NotificationStatus.PENDING:
            raise ValueError(f'notification {self.id} is already {self.status}')
        self.status = NotificationStatus.FAILED
        self.error = error or 'unknown error'

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'channel': self.channel,
            'recipient': self.recipient,
            'message': self.message,
            'status': self.status,
            'sent_at': isoformat(self.sent_at),
            'error': self.error,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Notification event={self.event_id} to={self.recipient} {self.status}>'


class NotificationCooldown(db.Model):
    """Last successful dispatch per event type, claimed with a conditional update."""
    __tablename__ = 'notification_cooldowns'

    event_type = db.Column(db.String(20), primary_key=True)
    last_sent_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<Cooldown {self.event_type} last={self.last_sent_at}>'
