"""Infrastructure adapters: database, email delivery and observability."""
