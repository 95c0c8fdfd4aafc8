"""
Scheduling services – registry, session recorder and monitoring.
"""
