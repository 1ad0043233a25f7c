"""
TrialDoc Backend - Middleware Package
=======================================

Middleware chain (outermost first):
    Request → [Request ID] → [Access Logging] → [CORS] → Route Handler

The request id is set before the access log line is written, so every log
entry of a request carries the same id.
"""
