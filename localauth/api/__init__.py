"""JSON API support: health checks and error mapping."""
