# Middleware package init
"""
Daily Doodles Backend — Middleware
====================================

What:  Cross-cutting concerns applied to every HTTP request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Rate limiting runs first so rejected requests cost nothing; the request
    id is set before the access log line is written. The voice WebSocket
    bypasses these (Starlette's BaseHTTPMiddleware only sees HTTP scopes).
"""
