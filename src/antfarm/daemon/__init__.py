"""Dashboard daemon management.

This package contains the PID file registry, the supervisor that starts and
stops the dashboard as a detached background process, and the entry point
that process runs.
"""
