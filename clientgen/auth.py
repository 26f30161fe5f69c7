"""Decide which auth interceptor shape the generated client needs.

Only the shape is chosen here; no authentication protocol is implemented.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

API_KEY_HEADER = "api_key_header"
API_KEY_QUERY = "api_key_query"
BEARER = "bearer"


@dataclass(frozen=True)
class AuthShape:
    kind: str
    scheme_name: str
    # Header or query parameter carrying an API key
    parameter_name: str | None = None


def _shape_of(name: str, scheme: dict[str, Any]) -> AuthShape | None:
    scheme_type = scheme.get("type")
    if scheme_type == "apiKey":
        location = scheme.get("in")
        if location == "header":
            return AuthShape(API_KEY_HEADER, name, scheme.get("name"))
        if location == "query":
            return AuthShape(API_KEY_QUERY, name, scheme.get("name"))
        return None
    if scheme_type == "http" and str(scheme.get("scheme", "")).lower() == "bearer":
        return AuthShape(BEARER, name)
    if scheme_type in ("oauth2", "openIdConnect"):
        return AuthShape(BEARER, name)
    return None


def detect_auth_shape(security_schemes: dict[str, Any]) -> AuthShape | None:
    """First supported security scheme, in document order."""
    if not security_schemes:
        return None
    for name, scheme in security_schemes.items():
        if not isinstance(scheme, dict):
            continue
        shape = _shape_of(str(name), scheme)
        if shape is not None:
            logger.debug("Auth interceptor shape %s from scheme %s", shape.kind, name)
            return shape
        logger.info("Security scheme %s (%s) needs no generated interceptor", name, scheme.get("type"))
    return None
