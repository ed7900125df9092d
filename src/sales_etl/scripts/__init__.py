"""
Operational scripts: schema setup and connectivity checks.
"""
