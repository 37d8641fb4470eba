"""AI proxy agents."""
