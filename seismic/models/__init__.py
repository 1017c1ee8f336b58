# File: seismic/models/__init__.py
from seismic.models.event_model import EventType, SeismicEvent, AftershockAnalysis
from seismic.models.notification_model import (
    Channel, NotificationStatus, NotificationRecord, NotificationCooldown
)
from seismic.models.config_model import SystemConfig
from seismic.models.user_model import Users
