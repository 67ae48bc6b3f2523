"""
Credit Kernel - deterministic underwriting foundation

Shared infrastructure for the underwriting computation core:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Canonical JSON hashing for audit replay
- Immutable domain values (financial model, debt instruments, metric registry)
- SQLAlchemy persistence for the metric registry
"""

__version__ = "0.1.0"
