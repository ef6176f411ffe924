"""
PlaceShare Backend: Application Package
=========================================

What:  A places directory API. Users sign up, log in, and publish places
       (title, description, geocoded address, photo) that only they may
       edit or remove.

Architecture Note:
    The backend keeps the same layering for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, ownership, transactions
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services raise the typed errors from `placeshare.exceptions`; routes
    never translate them by hand. The mapping to status codes lives in
    `placeshare.main`.
"""

__version__ = "1.0.0"
