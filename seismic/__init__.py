# File: seismic/__init__.py
import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_socketio import SocketIO
from config import Config

# Extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
socketio = SocketIO()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'Unauthorized', 'message': 'Login required'}), 401


def create_app(config_class=Config):
    """
    Factory that builds and configures the Flask application.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)

    # Socket.IO handlers (imported before init_app so they land in socketio.handlers)
    from seismic import events

    # Dashboards and the MQTT collector talk to the server through Socket.IO
    socketio.init_app(app, async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'))

    with app.app_context():
        from seismic import models

    # Shared collaborators, replaceable per app (tests inject their own transport)
    from seismic.services.config_service import ConfigProvider
    from seismic.services.transport import WhatsAppTransport
    app.extensions['seismic_config'] = ConfigProvider()
    app.extensions['delivery_transport'] = WhatsAppTransport.from_config(app.config)

    # Blueprints
    from seismic.controllers.auth_controller import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')

    from seismic.controllers.event_controller import event_bp
    app.register_blueprint(event_bp, url_prefix='/api')

    from seismic.controllers.analysis_controller import analysis_bp
    app.register_blueprint(analysis_bp, url_prefix='/api/analysis')

    from seismic.controllers.notification_controller import notification_bp
    app.register_blueprint(notification_bp, url_prefix='/api/notifications')

    from seismic.controllers.admin_controller import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/config')

    from seismic.controllers.errors import register_error_handlers
    register_error_handlers(app)

    register_commands(app)

    return app


def register_commands(app):
    """
    Register the `flask` CLI commands.
    """
    @app.cli.command("create-db")
    def create_db():
        """Create the database tables."""
        with app.app_context():
            db.create_all()
        print("Database created!")

    @app.cli.command("create-admin")
    @click.argument("username")
    @click.argument("email")
    @click.argument("password")
    @click.argument("fullname")
    def create_admin(username, email, password, fullname):
        """Create an initial administrator account."""
        with app.app_context():
            from seismic.models.user_model import ADMIN, Users
            if Users.query.filter_by(username=username).first() or Users.query.filter_by(email=email).first():
                print(f"User '{username}' or that email already exists.")
                return

            admin = Users(
                username=username,
                email=email,
                fullname=fullname,
                role=ADMIN
            )
            admin.set_password(password)
            db.session.add(admin)
            db.session.commit()
            print(f"Created admin account: {username}")

    @app.cli.command("process-pending")
    @click.option("--limit", default=50, show_default=True, help="Maximum events to process.")
    def process_pending_command(limit):
        """Estimate and notify events that have not been processed yet."""
        with app.app_context():
            from seismic.services.pipeline import process_pending
            results = process_pending(limit=limit)
        print(f"Processed {len(results)} pending events.")
