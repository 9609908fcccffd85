"""Kernel services: document sequences and the audit log."""
