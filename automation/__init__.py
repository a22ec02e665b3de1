"""Marketing automation workflow engine: triggers, enrollments, and timed steps."""
