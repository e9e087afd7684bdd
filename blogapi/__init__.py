"""
Blog API — Application Package
================================

What: Blogging platform backend: accounts, blogs with a publish state
      machine and view counter, threaded comments, categories, likes and
      image attachments, behind a bearer-token REST API.

Architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Security (principal + policy)     │  ← who is calling, may they
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← lifecycle, threading
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
