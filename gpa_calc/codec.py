"""
Share-token codec.

A token is the record as compact JSON, UTF-8 encoded, then URL-safe base64.
Decoding is all-or-nothing: anything that does not validate against the
record schema yields None.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from .record import AcademicRecord
from .schemas import validate_record

logger = logging.getLogger(__name__)


def record_to_dict(record: AcademicRecord) -> List[Dict[str, Any]]:
    return [
        {
            "id": sem.id,
            "label": sem.label,
            "modules": [
                {
                    "id": mod.id,
                    "name": mod.name,
                    "credits": mod.credits,
                    "gradeValue": mod.grade_value,
                    "isExempt": mod.is_exempt,
                }
                for mod in sem.modules
            ],
        }
        for sem in record.semesters
    ]


def record_from_dict(data) -> AcademicRecord:
    """Build a record from its JSON form. Raises ValueError on any shape or range mismatch."""
    return validate_record(data)


def encode(record: AcademicRecord) -> str:
    try:
        text = json.dumps(record_to_dict(record), ensure_ascii=False,
                          separators=(",", ":"), allow_nan=False)
        return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning("Could not encode record: %s", e)
        return ""


def decode(token) -> Optional[AcademicRecord]:
    if not isinstance(token, str) or not token.strip():
        return None
    try:
        raw = token.strip().replace("-", "+").replace("_", "/")
        raw += "=" * (-len(raw) % 4)
        text = base64.b64decode(raw, validate=True).decode("utf-8")
        return record_from_dict(json.loads(text))
    except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError) as e:
        logger.warning("Rejected share token: %s", e)
        return None
