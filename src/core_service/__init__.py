"""core-service package.

Organized by feature modules (branches, divisions, employees, attendance,
leave, ...) with a thin Flask controller layer on top of service and
repository layers.
"""
