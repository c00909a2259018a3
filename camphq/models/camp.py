from ..extensions import db

REGISTRATION_STATUSES = ("pending", "confirmed", "waitlisted", "cancelled", "refunded")
# registrations that count towards enrollment
ENROLLED_STATUSES = ("confirmed", "pending")
ATTENDANCE_STATUSES = ("not_arrived", "checked_in", "checked_out", "absent")


class Camp(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenant.id"), nullable=False, index=True)
    name = db.Column(db.String(180), nullable=False)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False)

    days = db.relationship("CampDay", backref="camp", lazy="select", order_by="CampDay.day_number")


class CampDay(db.Model):
    __tablename__ = "camp_day"

    id = db.Column(db.Integer, primary_key=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camp.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    day_number = db.Column(db.Integer, nullable=False)


class Registration(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenant.id"), nullable=False, index=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camp.id"), nullable=False, index=True)
    athlete_name = db.Column(db.String(160), default="")
    status = db.Column(db.String(16), nullable=False, default="pending")  # see REGISTRATION_STATUSES


class CampAttendance(db.Model):
    __tablename__ = "camp_attendance"

    id = db.Column(db.Integer, primary_key=True)
    camp_day_id = db.Column(db.Integer, db.ForeignKey("camp_day.id"), nullable=False, index=True)
    registration_id = db.Column(db.Integer, db.ForeignKey("registration.id"), nullable=False)
    check_in_time = db.Column(db.DateTime, nullable=True)
    check_out_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="not_arrived")  # see ATTENDANCE_STATUSES


class CampStaffAssignment(db.Model):
    __tablename__ = "camp_staff_assignment"

    id = db.Column(db.Integer, primary_key=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camp.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default="coach")
    is_lead = db.Column(db.Boolean, default=False)
