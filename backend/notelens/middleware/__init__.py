"""
NoteLens Backend — Middleware Package
=======================================

Middleware chain (outermost first):
    Request → [Request ID] → [Access Log] → [CORS] → Route Handler

The request ID is set before the access log line is written, so every log
entry for a request, including the ones emitted by the remote function and
storage clients, can be correlated through request_id_var.
"""
