"""Infrastructure implementations of the application service ports."""
