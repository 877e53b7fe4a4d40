"""Declarative base shared by all models and Alembic autogenerate."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
