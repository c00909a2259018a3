from ..extensions import db

class Tenant(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    slug = db.Column(db.String(80), nullable=False, unique=True)
    contact_email = db.Column(db.String(160))
    timezone = db.Column(db.String(64), default="America/New_York")
    is_active = db.Column(db.Boolean, default=True)


class UserTenant(db.Model):
    """Membership of a user in a licensee (tenant)."""
    __tablename__ = "user_tenant"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenant.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default="coach")  # licensee_owner|director|coach
    __table_args__ = (db.UniqueConstraint("user_id", "tenant_id", name="uq_user_tenant"),)
