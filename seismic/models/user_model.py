# File: seismic/models/user_model.py
from flask_login import UserMixin

from seismic import db, login_manager, bcrypt
from seismic.clock import isoformat, utcnow

ADMIN = 'admin'
VIEWER = 'user'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(Users, int(user_id))


class Users(db.Model, UserMixin):
    """Accounts allowed to use the administrative channel (thresholds, contacts)."""
    __tablename__ = 'users'

    id_user = db.Column(db.Integer, primary_key=True)
    fullname = db.Column(db.String(100), nullable=False)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=VIEWER)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    def get_id(self):
        return str(self.id_user)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == ADMIN

    def record_login(self, when=None):
        self.last_login_at = when or utcnow()

    def to_dict(self):
        return {
            'username': self.username,
            'fullname': self.fullname,
            'role': self.role,
            'last_login_at': isoformat(self.last_login_at),
        }

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'
