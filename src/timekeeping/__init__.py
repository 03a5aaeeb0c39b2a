"""Timekeeping package.

Organized by feature modules (time_entries, timeclock, overtime, payroll, ...)
with a thin Flask controller layer over service/repository layers.
"""
