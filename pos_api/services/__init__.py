"""
Use cases of the POS backend.

Each service module orchestrates repositories to implement one concern
(login/sessions, API keys, bootstrap/rebuild, the setup wizard).

Routers (FastAPI endpoints) should call these services instead of touching
the key-value store directly.
"""
