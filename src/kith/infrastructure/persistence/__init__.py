"""Storage adapters backed by a database."""
