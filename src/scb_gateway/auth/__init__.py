"""Client certificate credentials."""
