"""Adapter package for external I/O implementations.

Purpose:
    Concrete implementations for domain ports: release-feed HTTP client,
    backend subprocess launcher, import handshake listener, port probing,
    desktop shell/dialogs and the stdio channel transport.

Dependencies:
    ``requests`` (feed), ``fastapi``/``uvicorn``/``pydantic`` (listener),
    ``tkinter`` (dialogs), asyncio subprocess APIs.

Call context:
    Imported by ``conductor.app.context`` for runtime wiring and by tests.
"""
