"""Install and manage a generated, idempotent git pre-commit hook."""

__version__ = "0.4.0"
