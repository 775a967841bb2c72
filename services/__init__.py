"""Interview session, candidate and principal services."""
