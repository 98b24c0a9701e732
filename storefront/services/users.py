# storefront/services/users.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..errors import AuthenticationError, NotFoundError, ValidationError
from ..security import AdminCaller, Caller, UserCaller, hash_password, verify_password
from .firebase import ensure_firestore, now_utc, snapshot_to_dict

logger = logging.getLogger(__name__)

USERS = "users"
ADMINS = "admins"
ADMIN_ROLES = ("admin", "super_admin")


def _find_by_email(collection: str, email: str) -> Optional[Dict[str, Any]]:
    db = ensure_firestore()
    q = db.collection(collection).where("email", "==", email).limit(1)
    for snap in q.stream():
        return snapshot_to_dict(snap)
    return None


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def profile(account: Dict[str, Any], is_admin: bool = False) -> Dict[str, Any]:
    out = {
        "id": account["id"],
        "name": account.get("name"),
        "email": account.get("email"),
        "isAdmin": is_admin,
    }
    if is_admin:
        out["role"] = account.get("role", "admin")
    else:
        out["phone"] = account.get("phone")
        out["address"] = account.get("address")
    return out


def register_user(payload: Dict[str, Any]) -> Dict[str, Any]:
    name = (payload.get("name") or "").strip()
    email = _normalize_email(payload.get("email"))
    password = payload.get("password") or ""
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")

    if _find_by_email(USERS, email) or _find_by_email(ADMINS, email):
        raise ValidationError("User already exists")

    db = ensure_firestore()
    ref = db.collection(USERS).document()
    data = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "phone": payload.get("phone"),
        "address": payload.get("address"),
        "cart": [],
        "createdAt": now_utc(),
    }
    ref.set(data)
    data["id"] = ref.id
    logger.info("registered user %s", ref.id)
    return data


def create_admin(name: str, email: str, password: str, role: str = "admin") -> Dict[str, Any]:
    email = _normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")
    if role not in ADMIN_ROLES:
        raise ValidationError(f"role must be one of {', '.join(ADMIN_ROLES)}")
    if _find_by_email(ADMINS, email):
        raise ValidationError("Admin already exists")
    if _find_by_email(USERS, email):
        raise ValidationError("Email already in use by a regular user")

    db = ensure_firestore()
    ref = db.collection(ADMINS).document()
    data = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "role": role,
        "createdAt": now_utc(),
    }
    ref.set(data)
    data["id"] = ref.id
    logger.info("created %s account %s", role, ref.id)
    return data


def authenticate(email: str, password: str) -> Tuple[Caller, Dict[str, Any]]:
    """Check users first, then admins, like the login form expects."""
    email = _normalize_email(email)
    user = _find_by_email(USERS, email)
    if user:
        if not verify_password(password, user.get("password")):
            raise ValidationError("Invalid credentials")
        return UserCaller(id=user["id"]), profile(user)

    admin = _find_by_email(ADMINS, email)
    if admin:
        if not verify_password(password, admin.get("password")):
            raise ValidationError("Invalid credentials")
        caller = AdminCaller(id=admin["id"], role=admin.get("role", "admin"))
        return caller, profile(admin, is_admin=True)

    raise ValidationError("Invalid credentials")


def get_user(user_id: str, transaction=None) -> Dict[str, Any]:
    db = ensure_firestore()
    snap = db.collection(USERS).document(user_id).get(transaction=transaction)
    user = snapshot_to_dict(snap)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_profile(caller: Caller) -> Dict[str, Any]:
    if isinstance(caller, AdminCaller):
        db = ensure_firestore()
        admin = snapshot_to_dict(db.collection(ADMINS).document(caller.id).get())
        if not admin:
            raise AuthenticationError("Token is not valid")
        return profile(admin, is_admin=True)
    return profile(get_user(caller.id))
