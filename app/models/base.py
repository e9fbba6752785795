"""Shared table metadata."""

from sqlalchemy import MetaData

# Tables reference each other through foreign keys, so they share one MetaData.
metadata = MetaData()
