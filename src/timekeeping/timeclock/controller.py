from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.session import login_required, manager_required, session_company_id, session_employee_id
from ..common.datetime_utils import now_local
from ..common.validators import require_date, require_datetime, require_non_negative_int
from ..container import Container
from ..core.exceptions import NotFoundError
from ..employees.model import Employee
from ..time_entries.model import TimeEntry
from .model import ClockContext


def register(app: Flask, container: Container) -> None:
    service = container.timeclock_service

    def _current_employee() -> Employee:
        employee = container.employees_repo.get_by_id(session_employee_id())
        if employee is None or employee.company_id != session_company_id():
            raise NotFoundError("Employee not found")
        return employee

    def _company_entry(entry_id: int) -> TimeEntry:
        entry = container.entries_repo.get_by_id(entry_id)
        if entry is None or entry.company_id != session_company_id():
            raise NotFoundError("Time entry not found")
        return entry

    def _context() -> ClockContext:
        return ClockContext.from_payload(request.get_json(silent=True), ip=request.remote_addr)

    @app.route("/api/timeclock/clock-in", methods=["POST"], endpoint="timeclock_clock_in")
    @login_required
    def clock_in():
        employee = _current_employee()
        policy = container.policies_repo.get_for_company(employee.company_id)
        entry = service.clock_in(employee, policy, _context()).unwrap()
        return jsonify({"success": True, "message": "Clocked in", "entry": entry.to_dict()}), 201

    @app.route("/api/timeclock/clock-out", methods=["POST"], endpoint="timeclock_clock_out")
    @login_required
    def clock_out():
        employee = _current_employee()
        entry = service.get_active_entry(employee)
        if entry is None:
            raise NotFoundError("No active time entry")
        policy = container.policies_repo.get_for_company(employee.company_id)
        entry = service.clock_out(entry, policy, _context()).unwrap()
        return jsonify({"success": True, "message": "Clocked out", "entry": entry.to_dict()})

    @app.route("/api/timeclock/active", methods=["GET"], endpoint="timeclock_active")
    @login_required
    def active():
        entry = service.get_active_entry(_current_employee())
        if entry is None:
            return jsonify({"active": False, "entry": None})
        shift = container.shifts_repo.get_by_id(entry.shift_id) if entry.shift_id else None
        return jsonify(
            {
                "active": True,
                "entry": entry.to_dict(),
                "shift": shift.to_dict() if shift else None,
                "elapsed_minutes": entry.elapsed_minutes(),
                "elapsed_hours": entry.elapsed_hours(),
            }
        )

    @app.route("/api/timeclock/shifts", methods=["GET"], endpoint="timeclock_shifts")
    @login_required
    def shifts():
        day = request.args.get("date")
        day = require_date(day, "Date") if day else now_local().date()
        rows = [s for s in container.shifts_repo.list_for_company(session_company_id()) if s.runs_on(day)]
        return jsonify({"date": day.isoformat(), "shifts": [s.to_dict() for s in rows]})

    @app.route("/api/timeclock/validate", methods=["POST"], endpoint="timeclock_validate")
    @login_required
    def validate():
        employee = _current_employee()
        policy = container.policies_repo.get_for_company(employee.company_id)
        result = service.validate_clock_in(employee, policy, _context())
        return jsonify({"valid": result.is_valid, "errors": list(result.errors)})

    @app.route("/api/timeclock/auto-clock-out", methods=["POST"], endpoint="timeclock_auto_clock_out")
    @manager_required
    def auto_clock_out():
        outcomes = service.auto_clock_out_stale_entries(session_company_id())
        return jsonify(
            {
                "processed": len(outcomes),
                "outcomes": [o.to_dict() for o in outcomes],
            }
        )

    @app.route("/api/time-entries/manual", methods=["POST"], endpoint="time_entries_manual")
    @manager_required
    def manual_entry():
        data = request.get_json(silent=True) or {}
        employee = container.employees_repo.get_by_id(require_non_negative_int(data.get("employee_id"), "Employee id"))
        if employee is None or employee.company_id != session_company_id():
            raise NotFoundError("Employee not found")
        policy = container.policies_repo.get_for_company(employee.company_id)
        entry = service.create_manual_entry(
            employee,
            policy,
            clock_in=require_datetime(data.get("clock_in"), "Clock-in"),
            clock_out=require_datetime(data.get("clock_out"), "Clock-out"),
            break_minutes=require_non_negative_int(data.get("break_minutes", 0), "Break minutes"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "entry": entry.to_dict()}), 201

    @app.route("/api/time-entries/<int:entry_id>/approve", methods=["POST"], endpoint="time_entries_approve")
    @manager_required
    def approve_entry(entry_id: int):
        entry = service.approve_entry(_company_entry(entry_id), session_employee_id())
        return jsonify({"success": True, "entry": entry.to_dict()})

    @app.route("/api/time-entries/<int:entry_id>/reject", methods=["POST"], endpoint="time_entries_reject")
    @manager_required
    def reject_entry(entry_id: int):
        data = request.get_json(silent=True) or {}
        entry = service.reject_entry(_company_entry(entry_id), session_employee_id(), data.get("reason") or "")
        return jsonify({"success": True, "entry": entry.to_dict()})
