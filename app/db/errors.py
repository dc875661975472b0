from psycopg2 import errorcodes
from sqlalchemy.exc import IntegrityError


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the driver reports a unique-constraint violation."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == errorcodes.UNIQUE_VIOLATION:
        return True
    return getattr(orig, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_UNIQUE"
