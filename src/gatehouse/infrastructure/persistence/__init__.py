"""Persistence layer: database access, models, repositories and the SQL graph."""
