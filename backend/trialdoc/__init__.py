"""
TrialDoc Backend
=================

Clinical-trial document service: user authentication, document CRUD on
PostgreSQL, and clinical text analysis through the Anthropic Messages API.

Layers:
    routes/     HTTP concerns only (status codes, request/response models)
    services/   business logic (auth, documents, text analysis)
    models/     SQLAlchemy ORM tables; schemas/ holds the Pydantic API models
    database    ConnectionManager: engine lifecycle, sessions, retry policy
"""

__version__ = "1.0.0"
