from .tenant import Tenant, UserTenant
from .user import User
from .camp import Camp, CampDay, CampAttendance, CampStaffAssignment, Registration
from .compensation import CompensationPlan, CampSessionCompensation, CampDayCompensationSnapshot

__all__ = [
    "Tenant",
    "UserTenant",
    "User",
    "Camp",
    "CampDay",
    "CampAttendance",
    "CampStaffAssignment",
    "Registration",
    "CompensationPlan",
    "CampSessionCompensation",
    "CampDayCompensationSnapshot",
]
