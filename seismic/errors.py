# File: seismic/errors.py


class SeismicError(Exception):
    """Base class of every error raised by the event pipeline."""
    status_code = 500
    label = 'Internal server error'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.label, 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class InvalidInput(SeismicError):
    """Malformed or missing sample fields, rejected before any write."""
    status_code = 400
    label = 'Invalid input'


class NotFound(SeismicError):
    status_code = 404
    label = 'Not found'


class StoreUnavailable(SeismicError):
    """The persistence layer failed. The session was rolled back."""
    status_code = 503
    label = 'Store unavailable'


class AnalysisUnavailable(SeismicError):
    """The aftershock estimator could not complete. Nothing was written."""
    status_code = 503
    label = 'Analysis unavailable'


class ConfigurationError(SeismicError):
    status_code = 503
    label = 'Configuration error'


class DeliveryFailed(SeismicError):
    """Delivery to a single recipient failed. Recorded, never fatal to a dispatch."""
    status_code = 502
    label = 'Delivery failed'

    def __init__(self, recipient, message):
        super().__init__(message)
        self.recipient = recipient
