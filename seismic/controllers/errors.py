# File: seismic/controllers/errors.py
from flask import jsonify
from werkzeug.exceptions import HTTPException

from seismic.errors import SeismicError


def register_error_handlers(app):
    """JSON bodies for every error raised under /api and /auth."""

    @app.errorhandler(SeismicError)
    def handle_seismic_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', error.label, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'error': error.name,
            'message': error.description,
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception('Unhandled error: %s', error)
        message = str(error) if app.debug else 'Something went wrong!'
        return jsonify({'success': False, 'error': 'Internal server error', 'message': message}), 500
