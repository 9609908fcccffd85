"""
Back-Office Kernel

Shared infrastructure for the back-office modules:
- Database base classes, engine and transactional scope
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Clock, access rules and workflow value objects
- Business units, users, document sequences and the audit log
"""

__version__ = "0.1.0"
