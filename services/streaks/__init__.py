# services/streaks/__init__.py
"""streaks services package initializer: explicit exports only, no runtime side effects."""

__all__ = ["repo", "tracker", "attendance", "reports", "routes"]
