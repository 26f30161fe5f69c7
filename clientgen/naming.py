"""Deterministic string transforms for generated identifiers and labels.

  camel_case("list-users")        -> "listUsers"
  pascal_case("user_profile")     -> "UserProfile"
  title_case("rebootServer")      -> "Reboot Server"
  pluralize("category")           -> "categories"
  pluralize("status")             -> "statuses"
  singularize("boxes")            -> "box"
  type_name("pet.Owner")          -> "Pet_Owner"
  operation_method_name(None, "GET", "/users/{id}") -> "getUsersById"
"""

from __future__ import annotations

import re

# Irregular forms the suffix rules below get wrong
_PLURALS: dict[str, str] = {
    "person": "people",
    "child": "children",
    "cache": "caches",
    "movie": "movies",
    "niche": "niches",
    "alias": "aliases",
    "canvas": "canvases",
    "cause": "causes",
    "gas": "gases",
    "quiz": "quizzes",
    "waltz": "waltzes",
    "shelf": "shelves",
}

_SINGULARS: dict[str, str] = {v: k for k, v in _PLURALS.items()}

_SIBILANT = re.compile(r"(ss|s|x|z|sh|ch)$", re.IGNORECASE)
_CONSONANT_Y = re.compile(r"[^aeiou]y$", re.IGNORECASE)
_TS_IDENTIFIER = re.compile(r"^[a-zA-Z_$][a-zA-Z0-9_$]*$")
_SEPARATORS = re.compile(r"[-_\s./]+(.)?")


def _match_case(word: str, replacement: str) -> str:
    """Carry a leading capital over from word to replacement."""
    if word[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def pluralize(word: str) -> str:
    """Return the plural form of a resource name.

    Sibilant endings (s, ss, x, z, sh, ch) take "es"; consonant + y becomes "ies".
    """
    if not word:
        return word
    lower = word.lower()
    if lower in _PLURALS:
        return _match_case(word, _PLURALS[lower])
    if _SIBILANT.search(word):
        return word + "es"
    if _CONSONANT_Y.search(word):
        return word[:-1] + "ies"
    return word + "s"


def singularize(word: str) -> str:
    """Return the singular form of a resource name; inverse of pluralize for regular words."""
    if not word:
        return word
    lower = word.lower()
    if lower in _SINGULARS:
        return _match_case(word, _SINGULARS[lower])
    if lower in _PLURALS:
        return word
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower.endswith(("sses", "shes", "ches", "xes", "zzes")):
        return word[:-2]
    if lower.endswith("ouses"):
        return word[:-1]
    if lower.endswith("uses"):
        return word[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return word[:-1]
    return word


def camel_case(text: str) -> str:
    """Convert dashed, underscored or spaced text to camelCase."""
    if not text:
        return ""
    result = _SEPARATORS.sub(lambda m: (m.group(1) or "").upper(), text)
    return result[:1].lower() + result[1:]


def pascal_case(text: str) -> str:
    """Convert dashed, underscored or spaced text to PascalCase."""
    if not text:
        return ""
    result = _SEPARATORS.sub(lambda m: (m.group(1) or "").upper(), text)
    return result[:1].upper() + result[1:]


def kebab_case(text: str) -> str:
    if not text:
        return ""
    result = re.sub(r"([a-z])([A-Z])", r"\1-\2", text)
    return re.sub(r"[-_\s]+", "-", result).lower()


def title_case(text: str) -> str:
    """Convert an identifier to a human-readable label.

    Splits camelCase, snake_case and kebab-case, capitalizes each word and
    keeps words that are already upper case ("reindex SERVERS" -> "Reindex SERVERS").
    """
    if not text:
        return ""
    result = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    result = re.sub(r"[_-]", " ", result)
    result = re.sub(r"\b\w", lambda m: m.group(0).upper(), result)
    return re.sub(r"\s+", " ", result).strip()


def type_name(schema_name: str) -> str:
    """Canonical generated type name for a schema definition name."""
    name = re.sub(r"[^a-zA-Z0-9]", "_", schema_name)
    name = re.sub(r"(?:^|_)([a-z])", lambda m: m.group(1).upper(), name)
    return re.sub(r"^([0-9])", r"_\1", name)


def is_identifier(name: str) -> bool:
    """Whether name is usable as a bare TypeScript property name."""
    return bool(_TS_IDENTIFIER.match(name))


def quote_property(name: str) -> str:
    """Quote a property name unless it is a valid bare identifier."""
    if is_identifier(name):
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def enum_key(value: object) -> str:
    """Synthesize an enum member name from a literal value."""
    text = str(value)
    negative = text.startswith("-")
    key = pascal_case(text)
    key = re.sub(r"[^a-zA-Z0-9_$]", "_", key)
    if not key:
        return "Empty"
    if key[0].isdigit():
        key = ("_n" if negative else "_") + key
    return key


def operation_method_name(operation_id: str | None, method: str, path: str) -> str:
    """Name of the generated client method for an operation.

    Uses the camelCased operationId when present, otherwise the HTTP verb
    followed by the path segments, with parameters rendered as "By<Name>".
    """
    if operation_id:
        return camel_case(re.sub(r"[^a-zA-Z0-9_\-\s./]", "", operation_id))

    parts: list[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith("{") and segment.endswith("}"):
            parts.append("By" + pascal_case(segment[1:-1]))
        else:
            parts.append(pascal_case(re.sub(r"[^a-zA-Z0-9_\-]", "_", segment)))
    return method.lower() + "".join(parts)
