"""
Core utilities shared across the POS backend.

This package hosts:
- configuration helpers (env vars, backend selection flags)
- cross-cutting services such as logging, password hashing, rate limiting
  and page revalidation.

Routers/services should depend on these primitives instead of reading
os.environ or configuring loggers themselves.
"""
