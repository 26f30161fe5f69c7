"""Load an OpenAPI/Swagger document and expose it as a schema store.

Reads JSON or YAML from disk or over HTTP, then offers named-definition
lookup and local $ref resolution to the rest of the generator.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import yaml

from .errors import SpecLoadError

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 30.0

_ACCEPT = "application/json, application/yaml, text/yaml, text/plain, */*"


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _fetch(url: str, client: httpx.Client | None = None) -> str:
    """Fetch document text from a URL."""
    headers = {"Accept": _ACCEPT, "User-Agent": "clientgen"}
    try:
        if client is not None:
            response = client.get(url, headers=headers, timeout=FETCH_TIMEOUT)
        else:
            response = httpx.get(url, headers=headers, timeout=FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise SpecLoadError(f"Failed to fetch {url}: request timeout ({FETCH_TIMEOUT:.0f}s)") from exc
    except httpx.HTTPError as exc:
        raise SpecLoadError(f"Failed to fetch {url}: {exc}") from exc
    return response.text


def _detect_format(source: str, content: str) -> str:
    """Pick json or yaml from the source suffix, else from the content."""
    suffix = Path(httpx.URL(source).path if is_url(source) else source).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    if content.lstrip().startswith(("{", "[")):
        return "json"
    return "yaml"


def parse_spec_text(content: str, source: str = "<string>") -> dict[str, Any]:
    """Parse document text into a dict."""
    if not content or not content.strip():
        raise SpecLoadError(f"Empty API document: {source}")
    fmt = _detect_format(source, content)
    try:
        spec = json.loads(content) if fmt == "json" else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SpecLoadError(f"Failed to parse {fmt.upper()} content from {source}: {exc}") from exc
    if not isinstance(spec, dict):
        raise SpecLoadError(f"API document {source} is not a mapping")
    return spec


def load_spec(source: str | Path, client: httpx.Client | None = None) -> dict[str, Any]:
    """Load the API document from a file path or an http(s) URL."""
    source = str(source)
    if is_url(source):
        content = _fetch(source, client)
    else:
        try:
            content = Path(source).read_text(encoding="utf-8")
        except OSError as exc:
            raise SpecLoadError(f"Cannot read API document {source}: {exc}") from exc
    logger.debug("Loaded %d bytes from %s", len(content), source)
    return parse_spec_text(content, source)


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


class SchemaStore:
    """Read-only view over one parsed API document."""

    def __init__(self, spec: dict[str, Any]) -> None:
        version = self.spec_version_of(spec)
        if version is None:
            raise SpecLoadError(
                "Invalid or unsupported API document format."
                " Expected OpenAPI 3.x or Swagger 2.x."
            )
        self.spec = spec
        self.version = version

    @staticmethod
    def spec_version_of(spec: dict[str, Any]) -> tuple[str, str] | None:
        swagger = str(spec.get("swagger", ""))
        if swagger.startswith("2."):
            return ("swagger", swagger)
        openapi = str(spec.get("openapi", ""))
        if openapi.startswith("3."):
            return ("openapi", openapi)
        return None

    def get_definitions(self) -> dict[str, Any]:
        """Named schemas: Swagger 2 definitions or OpenAPI 3 components.schemas."""
        if "definitions" in self.spec:
            return self.spec.get("definitions") or {}
        return self.spec.get("components", {}).get("schemas") or {}

    def get_definition(self, name: str) -> Any:
        return self.get_definitions().get(name)

    def definition_ref(self, name: str) -> str:
        """The $ref pointer naming a definition in this document's dialect."""
        escaped = name.replace("~", "~0").replace("/", "~1")
        if self.version[0] == "swagger":
            return f"#/definitions/{escaped}"
        return f"#/components/schemas/{escaped}"

    def get_paths(self) -> dict[str, Any]:
        return self.spec.get("paths") or {}

    def get_security_schemes(self) -> dict[str, Any]:
        if "securityDefinitions" in self.spec:
            return self.spec.get("securityDefinitions") or {}
        return self.spec.get("components", {}).get("securitySchemes") or {}

    def info_version(self) -> str:
        return str(self.spec.get("info", {}).get("version", "unknown"))

    def resolve_reference(self, ref: str) -> Any:
        """Resolve a local $ref pointer; None when it does not resolve.

        Pointers that do not walk the document fall back to a definition
        lookup by their last segment.
        """
        if not isinstance(ref, str) or not ref:
            return None
        if ref.startswith("#/"):
            node: Any = self.spec
            for token in ref[2:].split("/"):
                if not isinstance(node, dict):
                    node = None
                    break
                node = node.get(_unescape(token))
                if node is None:
                    break
            if node is not None:
                return node
        return self.get_definition(_unescape(ref.rsplit("/", 1)[-1]))
