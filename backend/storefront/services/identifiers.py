"""
Storefront Backend — Identifier Parsing
=========================================

Record ids are UUIDs. Path and form values arrive as strings; anything
that is not a UUID is a client error (400), never a lookup that 500s.
"""

import uuid
from typing import List, Optional

from storefront.exceptions import ValidationError


def parse_id(value: Optional[str], message: str = "Invalid id", field: str = "id") -> uuid.UUID:
    """Parse a UUID string or raise ValidationError with the given message."""
    if not value:
        raise ValidationError(message=message, field=field)
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        raise ValidationError(message=message, field=field, context={"value": value})


def parse_id_list(raw: str, field: str = "categories") -> List[uuid.UUID]:
    """
    Parse a comma-separated id list ("id1,id2"); blank entries are skipped.
    """
    return [
        parse_id(part, message=f"Invalid id '{part.strip()}' in {field}", field=field)
        for part in raw.split(",")
        if part.strip()
    ]
