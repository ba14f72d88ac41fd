# services/grading/__init__.py
"""grading services package initializer: explicit exports only, no runtime side effects."""

__all__ = ["evaluator", "grader", "composer", "placement", "stats", "workflows", "app"]
