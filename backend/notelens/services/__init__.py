"""
NoteLens Backend — Services Package
=====================================

Transport clients (one HTTP client shared through BackendSession):
    - functions_client.py:  callable functions, retry + circuit breaker
    - storage_client.py:    blob uploads, download URLs
    - auth_service.py:      identity service (sign-up, login, token lookup)

Adapters and state:
    - vision_service.py:    validate → upload → invoke → normalize
    - language_service.py:  validate → invoke → normalize
    - interaction.py:       loading/error/result controller, per-user registry

Persistence:
    - note_service.py:      notes CRUD on SQLAlchemy
"""
