"""
TrialDoc Backend - API Routes Package
=======================================

Route Inventory:
    - health.py:     GET  /, GET /health
    - auth.py:       POST /auth/register, POST /auth/login, GET /auth/verify
    - documents.py:  /documents CRUD (bearer token)
    - claude.py:     POST /claude/text-processing, /pattern-analysis,
                     /reasoning-generation (bearer token)

Routes stay thin: they parse the request, call a service, and shape the
response. Business rules live in services/.
"""
