"""Attendance Ledger package.

Feature modules (attendance, sync, settings, subjects) with a thin Flask
controller layer over service/repository layers.
"""
