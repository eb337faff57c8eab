"""Database plumbing: declarative base, engine/session management, column types."""
