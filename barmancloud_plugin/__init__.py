"""Configuration, RBAC, sidecar injection and restore helpers for cloud object-store backups."""

__version__ = "0.1.0"