"""Browser-facing layer: session context and form routes."""
