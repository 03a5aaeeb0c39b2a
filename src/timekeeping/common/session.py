from __future__ import annotations

from functools import wraps

from flask import jsonify, session

from ..core.enums import Role

# Login is owned by the host application; it stores these keys in the session.
EMPLOYEE_ID = "employee_id"
COMPANY_ID = "company_id"
ROLE = "role"

_REVIEWER_ROLES = {Role.MANAGER.value, Role.ADMIN.value}


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if EMPLOYEE_ID not in session:
            return jsonify({"success": False, "message": "Login required"}), 401
        return view(*args, **kwargs)

    return wrapper


def manager_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if EMPLOYEE_ID not in session:
            return jsonify({"success": False, "message": "Login required"}), 401
        if session.get(ROLE) not in _REVIEWER_ROLES:
            return jsonify({"success": False, "message": "Manager access required"}), 403
        return view(*args, **kwargs)

    return wrapper


def is_reviewer() -> bool:
    return session.get(ROLE) in _REVIEWER_ROLES


def session_employee_id() -> int:
    return int(session[EMPLOYEE_ID])


def session_company_id() -> int:
    return int(session[COMPANY_ID])
