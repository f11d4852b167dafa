"""Monitoring core: evaluation, alert lifecycle, aggregation and dispatch."""
