"""API route modules."""

from uuid import UUID

from fastapi import HTTPException, status


def parse_uuid(value: str, what: str = "ID") -> UUID:
    """Parse a path ID, answering 400 when it is not a UUID."""
    try:
        return UUID(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {what} format",
        ) from e
