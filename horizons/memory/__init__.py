"""Project and task persistence."""
