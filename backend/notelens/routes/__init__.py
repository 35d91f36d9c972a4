"""
NoteLens Backend — API Routes Package
=======================================

Route Inventory:
    - auth.py:         POST /api/auth/signup, /api/auth/login, /api/auth/logout
    - notes.py:        GET/POST /api/notes, DELETE /api/notes/{id}
    - vision.py:       POST /api/vision/{classify,text,analyze,faces}
    - language.py:     POST /api/language/{sentiment,translate,moderate,entities,summarize}
    - interaction.py:  GET /api/ai/state, POST /api/ai/reset
    - health.py:       GET /health

Routes stay thin: extract request data, call the service or the user's
interaction controller, return the response model. Errors are rendered by
the global exception handlers in main.py.
"""
