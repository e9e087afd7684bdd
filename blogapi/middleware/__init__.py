# Middleware package init
"""
Blog API — Middleware Package
===============================

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    1. Request ID first: every response, 429s included, carries the ID
    2. Rate Limit: reject abusive clients before any real work
    3. Logging: method, path, status and duration with the request ID
"""
