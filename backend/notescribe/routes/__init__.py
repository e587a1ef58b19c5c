"""
NoteScribe Backend — Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - pages.py:   GET  /                      (upload UI)
                  GET  /static/{file}         (UI assets)
                  GET  /images/{file}         (stored note images)
    - notes.py:   POST /api/add-note
                  POST /api/update-note
                  POST /api/regenerate-note
                  GET  /api/notes
    - health.py:  GET  /health

Routes stay thin: extract form data, call a service, shape the response.
Business rules live in services/.
"""
