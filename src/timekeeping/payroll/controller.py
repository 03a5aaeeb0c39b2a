from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.session import (
    is_reviewer,
    login_required,
    manager_required,
    session_company_id,
    session_employee_id,
)
from ..common.validators import require_date
from ..container import Container
from ..core.enums import PayFrequency
from ..core.exceptions import NotFoundError
from ..pay_periods.model import PayPeriod


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    def _company_period(period_id: int) -> PayPeriod:
        period = service.get_pay_period(period_id)
        if period is None or period.company_id != session_company_id():
            raise NotFoundError("Pay period not found")
        return period

    @app.route("/api/pay-periods/generate", methods=["POST"], endpoint="pay_periods_generate")
    @manager_required
    def generate():
        data = request.get_json(silent=True) or {}
        periods = service.generate_pay_periods(
            session_company_id(),
            require_date(data.get("start_date"), "Start date"),
            require_date(data.get("end_date"), "End date"),
            data.get("frequency") or PayFrequency.BIWEEKLY.value,
        )
        return jsonify({"success": True, "pay_periods": [p.to_dict() for p in periods]})

    @app.route("/api/pay-periods/<int:period_id>/hours", methods=["GET"], endpoint="pay_periods_hours")
    @login_required
    def hours(period_id: int):
        period = _company_period(period_id)
        policy = container.policies_repo.get_for_company(period.company_id)

        # Employees only see their own hours
        employee_id = request.args.get("employee_id", type=int) if is_reviewer() else session_employee_id()
        rows = service.calculate_pay_period_hours(period, policy, employee_id=employee_id)
        return jsonify({"pay_period": period.to_dict(), "employees": [r.to_dict() for r in rows]})

    @app.route("/api/pay-periods/<int:period_id>/summary", methods=["GET"], endpoint="pay_periods_summary")
    @manager_required
    def summary(period_id: int):
        period = _company_period(period_id)
        return jsonify({"pay_period": period.to_dict(), "summary": service.get_summary_statistics(period).to_dict()})

    @app.route("/api/pay-periods/<int:period_id>/recalculate", methods=["POST"], endpoint="pay_periods_recalculate")
    @manager_required
    def recalculate(period_id: int):
        period = _company_period(period_id)
        policy = container.policies_repo.get_for_company(period.company_id)
        return jsonify({"success": True, "entries_updated": service.recalculate_pay_period(period, policy)})

    @app.route("/api/pay-periods/<int:period_id>/approve", methods=["POST"], endpoint="pay_periods_approve")
    @manager_required
    def approve(period_id: int):
        period = service.approve_pay_period(_company_period(period_id), session_employee_id())
        return jsonify({"success": True, "pay_period": period.to_dict()})

    @app.route("/api/pay-periods/<int:period_id>/export", methods=["POST"], endpoint="pay_periods_export")
    @manager_required
    def export(period_id: int):
        data = request.get_json(silent=True) or {}
        period = _company_period(period_id)
        count = service.mark_as_exported(period, str(data.get("batch_id") or ""))
        return jsonify({"success": True, "entries_exported": count})
