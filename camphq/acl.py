# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import List, Dict, Any, Set
from flask import session
from sqlalchemy import text
from .extensions import db
from .errors import AccessDeniedError, ValidationError

# membership roles allowed to run the compensation workflow for a tenant
MANAGER_ROLES = ("licensee_owner", "director")

# --- tenant lists ---
def _all_active_tenants() -> List[Dict[str, Any]]:
    sql = 'SELECT id, name FROM "tenant" WHERE is_active = :a ORDER BY name'
    return list(db.session.execute(text(sql), {"a": True}).mappings().all())

def _user_memberships(user_id: int) -> List[Dict[str, Any]]:
    sql = """
      SELECT t.id AS id, t.name AS name, ut.role AS role
      FROM "user_tenant" ut
      JOIN "tenant" t ON t.id = ut.tenant_id
      WHERE ut.user_id = :uid AND t.is_active = :a
      ORDER BY t.name
    """
    return list(db.session.execute(text(sql), {"uid": user_id, "a": True}).mappings().all())

def tenants_for_user(user) -> List[Dict[str, Any]]:
    if getattr(user, "role", "") == "hq_admin":
        return _all_active_tenants()
    return _user_memberships(getattr(user, "id", 0))

def allowed_tenant_ids(user) -> Set[int]:
    return {row["id"] for row in tenants_for_user(user)}

# --- active tenant in the session ---
_SESSION_KEY = "tenant_id"

def get_active_tenant_id(user) -> int | None:
    ids = list(allowed_tenant_ids(user))
    if not ids:
        return None
    try:
        cur = int(session.get(_SESSION_KEY) or 0)
    except (TypeError, ValueError):
        cur = 0
    if cur in ids:
        return cur
    cur = sorted(ids)[0]
    session[_SESSION_KEY] = cur
    return cur

def set_active_tenant_id(user, tenant_id: int) -> bool:
    if tenant_id in allowed_tenant_ids(user):
        session[_SESSION_KEY] = int(tenant_id)
        return True
    return False

def resolve_tenant_id(user, requested) -> int:
    """Tenant named by the request, else the active one; must be one the user belongs to."""
    if requested in (None, ""):
        tid = get_active_tenant_id(user)
        if not tid:
            raise AccessDeniedError("No tenant available")
        return tid
    try:
        tid = int(requested)
    except (TypeError, ValueError):
        raise ValidationError("tenant_id must be an integer")
    if tid not in allowed_tenant_ids(user):
        raise AccessDeniedError("Tenant access denied")
    return tid

# --- roles inside a tenant ---
def tenant_role(user, tenant_id: int) -> str | None:
    row = db.session.execute(
        text('SELECT role FROM "user_tenant" WHERE user_id=:u AND tenant_id=:t'),
        {"u": getattr(user, "id", 0), "t": tenant_id},
    ).first()
    return row[0] if row else None

def can_manage_compensation(user, tenant_id: int) -> bool:
    if getattr(user, "role", "") == "hq_admin":
        return True
    if tenant_id not in allowed_tenant_ids(user):
        return False
    return tenant_role(user, tenant_id) in MANAGER_ROLES

def effective_role(user, tenant_id: int | None) -> str:
    """Global role for HQ, otherwise the membership role inside the tenant."""
    if getattr(user, "role", "") == "hq_admin":
        return "hq_admin"
    if tenant_id is not None:
        role = tenant_role(user, tenant_id)
        if role:
            return role
    return getattr(user, "role", "") or "coach"
