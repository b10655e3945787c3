"""Observability helpers: error log file, health state, redaction."""
