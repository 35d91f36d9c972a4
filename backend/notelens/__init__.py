"""
NoteLens Backend
=================

Notes plus AI helpers for a small note-taking app. The AI work (image
labelling, OCR, sentiment, translation, moderation, entities, summaries)
runs in remote callable functions on a managed backend platform; this
package uploads images to the platform's blob storage, invokes the
functions, normalizes their responses into typed results and tracks the
loading/error/result state of each user's last AI operation.

Layout:
    config.py       settings (environment / .env)
    session.py      BackendSession: handles to the platform
    services/       functions, storage and identity clients; vision and
                    language adapters; the interaction controller; notes
    routes/         FastAPI routers
    main.py         application factory
"""

__version__ = "1.0.0"
