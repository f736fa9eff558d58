"""POS administration backend (FastAPI + pluggable key-value store)."""

__version__ = "1.4.0"
