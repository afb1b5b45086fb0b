"""File admission, line reading and tail task orchestration."""
