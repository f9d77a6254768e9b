"""Optional services layered around the lock core."""

from .audit_logger import LockAuditLogger

__all__ = ["LockAuditLogger"]
