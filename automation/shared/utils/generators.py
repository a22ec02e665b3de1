"""Row id generation."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """Return a new CUID2 string; every table uses these as primary keys."""
    return str(_next_cuid())
