"""Guard predicates for user-supplied TMDb credentials, queries and ids.

Everything here is pure: no network, no logging. Callers decide which error
to raise when a check fails.
"""

from __future__ import annotations

import re
from typing import Any

MAX_QUERY_LENGTH = 200

# v3 API keys are 32 hex chars, v4 read access tokens are dotted base64url JWTs.
_TOKEN_RE = re.compile(r"[A-Za-z0-9._-]{32,}")


def is_valid_token(token: Any) -> bool:
    """Check that the token looks like a TMDb API key or bearer token."""

    if not isinstance(token, str):
        return False
    trimmed = token.strip()
    if not trimmed:
        return False
    return _TOKEN_RE.fullmatch(trimmed) is not None


def is_valid_search_query(query: Any) -> bool:
    if not isinstance(query, str):
        return False
    trimmed = query.strip()
    return 0 < len(trimmed) <= MAX_QUERY_LENGTH


def is_valid_record_id(record_id: Any) -> bool:
    # bool is an int subclass; True must not pass as id 1
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        return False
    return record_id > 0
