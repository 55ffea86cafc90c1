"""Infrastructure — database sessions, identity client, notification fanout, logging."""
