"""
Daily Doodles Backend — Application Package Initializer
=======================================================

What: Marks the `daily_doodles` directory as a Python package.
Who:  Used by uvicorn (`daily_doodles.main:app`), pytest, and the route modules.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │     Routes (HTTP + WebSocket)       │  ← request/response concerns only
    ├─────────────────────────────────────┤
    │   Controllers (view/editor state)   │  ← view machine, forms, editor, voice
    ├─────────────────────────────────────┤
    │   Services (hosted-service adapters)│  ← Supabase storage, Gemini AI
    ├─────────────────────────────────────┤
    │        Models & Schemas (Data)      │  ← pydantic domain + API models
    └─────────────────────────────────────┘

    Persistence and authentication live in a hosted Supabase project and all
    text/voice analysis lives in the hosted Gemini API. Nothing below the
    services layer is owned by this package.
"""

__version__ = "1.0.0"
