"""Session-state and time-aggregation engine."""
