"""Region access request workflow."""
