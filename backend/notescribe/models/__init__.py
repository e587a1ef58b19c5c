"""ORM models (one table: notes)."""
