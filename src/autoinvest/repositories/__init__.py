"""Data access layer: repository protocols and SQLAlchemy implementations."""
