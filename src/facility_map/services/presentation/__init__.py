"""Map marker presentation."""
