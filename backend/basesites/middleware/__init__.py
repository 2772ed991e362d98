"""
BaseSites Backend: Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request, plus the bearer
       token dependencies used by protected routes (auth.py).

Middleware Chain (last added runs first):
    Request → [CORS] → [Rate Limit] → [API Key] → [Request ID] → [Logging] → [GZip] → Route

    1. CORS answers preflights and adds its headers to every response,
       rejections from the layers below included.
    2. Rate Limit rejects abusive IPs.
    3. API Key rejects clients without the shared key (health, docs and the
       billing webhook are exempt).
    4. Request ID sets the correlation id used by every later log line.
    5. Logging records status and duration once the response is ready.
"""
