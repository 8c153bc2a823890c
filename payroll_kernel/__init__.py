"""
Payroll Kernel

Shared foundation for the salary calculation engine:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
- Injectable clock
- SQLAlchemy declarative base and session helpers
"""

__version__ = "0.1.0"
