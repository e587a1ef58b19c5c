"""
NoteScribe Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and persistence.

Service Inventory:
    - BlobStore: uploaded image files on disk
    - NoteStore: the `notes` table
    - TranscriptionService (abstract): image → Markdown
    - OpenAITranscriptionService: chat-completions implementation
    - NoteService: add / update / regenerate workflows over the three above

Every service is built once by create_app() and reached by routes through
the dependencies in notescribe.dependencies.
"""
