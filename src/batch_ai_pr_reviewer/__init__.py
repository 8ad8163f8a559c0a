# src/batch_ai_pr_reviewer/__init__.py
__version__ = "0.2.0"
