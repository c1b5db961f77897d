"""Metadata store: ORM models, column types and session factories."""
