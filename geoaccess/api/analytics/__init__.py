"""Region usage analytics."""
