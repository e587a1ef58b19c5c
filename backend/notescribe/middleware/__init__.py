"""
NoteScribe Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → Route Handler

    1. Request ID first, so every later log line can be correlated
    2. Logging records method, path, status and duration

    Responses travel back through the same chain in reverse, which is
    where the X-Request-ID header is attached.
"""
