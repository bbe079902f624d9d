"""
Core application utilities for settings and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging context, domain errors and token verification
- Dependency helpers (DB session, current profile, role checks)
"""
