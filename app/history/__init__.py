"""Suite generation history and run tracking."""
