# File: seismic/forms.py
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, FloatField, IntegerField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, Regexp, ValidationError

from seismic.services.config_service import get_provider


class ApiForm(FlaskForm):
    """JSON bodies authenticated by the session cookie, no CSRF token."""
    class Meta:
        csrf = False

    def error_messages(self):
        return {name: errors for name, errors in self.errors.items()}


class LoginForm(ApiForm):
    username = StringField('Username', validators=[DataRequired(message="Username is required.")])
    password = PasswordField('Password', validators=[DataRequired(message="Password is required.")])
    remember = BooleanField('Remember me')


class SettingsForm(ApiForm):
    """Partial update of the detection and notification settings."""
    earthquake_threshold = FloatField('Earthquake threshold (m/s²)', validators=[
        Optional(),
        NumberRange(min=0.1, max=500, message="Earthquake threshold must be between 0.1 and 500.")
    ])

    vibration_threshold = FloatField('Vibration threshold (m/s²)', validators=[
        Optional(),
        NumberRange(min=0, max=500, message="Vibration threshold must be between 0 and 500.")
    ])

    aftershock_window_hours = IntegerField('Aftershock window (hours)', validators=[
        Optional(),
        NumberRange(min=1, max=24 * 30, message="Aftershock window must be between 1 and 720 hours.")
    ])

    notification_cooldown_minutes = IntegerField('Notification cooldown (minutes)', validators=[
        Optional(),
        NumberRange(min=0, max=24 * 60, message="Cooldown must be between 0 and 1440 minutes.")
    ])

    def validate_vibration_threshold(self, field):
        if field.data is None:
            return
        quake = self.earthquake_threshold.data
        if quake is None:
            quake = get_provider().snapshot().earthquake_threshold
        if field.data > quake:
            raise ValidationError('Vibration threshold cannot exceed the earthquake threshold.')

    def validate_earthquake_threshold(self, field):
        # Both present is checked by validate_vibration_threshold
        if field.data is None or self.vibration_threshold.data is not None:
            return
        if field.data < get_provider().snapshot().vibration_threshold:
            raise ValidationError('Earthquake threshold cannot be below the vibration threshold.')

    def settings(self):
        """Only the fields present in the request."""
        return {
            name: field.data for name, field in self._fields.items()
            if field.data is not None
        }


class ManualNotificationForm(ApiForm):
    event_id = IntegerField('Event', validators=[DataRequired(message="event_id is required.")])
    phone_number = StringField('Phone number', validators=[
        DataRequired(message="phone_number is required."),
        Length(min=6, max=20),
        Regexp(r'^\+?[0-9]+$', message="Digits only, optional leading +")
    ])
    message = StringField('Message', validators=[DataRequired(message="message is required.")])


class TestNotificationForm(ApiForm):
    phone_number = StringField('Phone number', validators=[
        DataRequired(message="phone_number is required."),
        Regexp(r'^\+?[0-9]+$', message="Digits only, optional leading +")
    ])
