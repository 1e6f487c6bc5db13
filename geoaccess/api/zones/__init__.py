"""Region zones and zone assignments."""
