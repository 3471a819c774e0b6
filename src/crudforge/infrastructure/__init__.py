"""Infrastructure layer: SQLAlchemy database wiring and repositories."""
