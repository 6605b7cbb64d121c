"""
Declarative base for all SQLAlchemy models.
"""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (the test suite runs on SQLite)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
