from datetime import datetime, timezone
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
from ..extensions import db, login_manager

ROLES = ("hq_admin", "licensee_owner", "director", "coach")
ADMIN_ROLES = ("hq_admin", "licensee_owner")


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model, UserMixin):
    """Login account; doubles as the staff profile that compensation rows point at."""
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(160), default="")
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(80), default="")
    last_name = db.Column(db.String(80), default="")
    role = db.Column(db.String(32), default="coach")  # hq_admin|licensee_owner|director|coach
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username or f"#{self.id}"

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
