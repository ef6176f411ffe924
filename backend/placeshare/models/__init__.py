"""
ORM models. Importing this package registers every table with
`Base.metadata`, which Alembic and the test fixtures rely on.
"""

from placeshare.models.user import User
from placeshare.models.place import Place, UserPlace

__all__ = ["User", "Place", "UserPlace"]
