"""Course document parsing.

Two JSON shapes are accepted:

Shape A, a learning route keyed by a known identifier::

    {"ruta_aprendizaje_crochet": [{"nivel": "1", "temas": ["t1"]}]}

Shape B, an explicit course object::

    {"title": "Python", "description": "...", "levels": [{"title": "Basics"}]}

Level fields may use Spanish or English keys. Everything is resolved once,
here, into ``ParsedCourse`` / ``ParsedLevel``; nothing downstream looks at
the raw document again.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

# Known route identifiers -> display titles
ROUTE_TITLES: dict[str, str] = {
    "ruta_aprendizaje_ciberseguridad": "Ruta de Aprendizaje en Ciberseguridad",
    "ruta_aprendizaje_crochet": "Ruta de Aprendizaje en Crochet",
    "ruta_ia_en_administracion_y_contaduria": "Ruta de IA en Administración y Contaduría",
    "leverage_crypto": "Leverage Crypto Trading",
    "hipertrofia_fat_loss": "Hipertrofia y Pérdida de Grasa",
}

# Accepted keys per logical level field, in lookup order
TITLE_ALIASES = ("nivel", "level", "title")
TOPIC_ALIASES = ("temas", "topics")
OBJECTIVE_ALIASES = ("objetivos", "objectives")
TOOL_ALIASES = ("herramientas", "tools")
RESOURCE_ALIASES = ("recursos", "resources")

_WORD_START = re.compile(r"\b\w")


class CourseParseError(ValueError):
    """The upload is not valid JSON."""


class CourseFormatError(ValueError):
    """The JSON is well-formed but is not a recognised course document."""


@dataclass(frozen=True)
class ParsedLevel:
    order: int
    title: str
    topics: list[str] = field(default_factory=list)
    objectives: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    @property
    def content(self) -> dict[str, list[str]]:
        """The four lists bundled together, as stored in ``course_levels.content``."""
        return {
            "topics": list(self.topics),
            "objectives": list(self.objectives),
            "tools": list(self.tools),
            "resources": list(self.resources),
        }


@dataclass(frozen=True)
class ParsedCourse:
    title: str
    description: str
    levels: list[ParsedLevel]


def route_title(key: str) -> str:
    """Display title for a route key.

    Unknown keys: underscores become spaces and each word's first letter is
    upper-cased; the rest of the word is left as-is.
    """
    if key in ROUTE_TITLES:
        return ROUTE_TITLES[key]
    return _WORD_START.sub(lambda m: m.group(0).upper(), key.replace("_", " "))


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _first_present(raw: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    """First alias whose value is not blank.

    Blank means ``None``, ``""`` or ``[]``, so an empty list under an earlier
    alias falls through to the next one. Other falsy values such as ``0``
    are kept.
    """
    for key in aliases:
        value = raw.get(key)
        if not _is_blank(value):
            return value
    return None


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [item if isinstance(item, str) else str(item) for item in value if item is not None]
    return [str(value)]


def parse_level(raw: Any, position: int) -> ParsedLevel:
    """Resolve one level entry. ``position`` is 1-based."""
    if not isinstance(raw, dict):
        raw = {}

    title = _first_present(raw, TITLE_ALIASES)
    return ParsedLevel(
        order=position,
        title=str(title) if title is not None else f"Level {position}",
        topics=_as_string_list(_first_present(raw, TOPIC_ALIASES)),
        objectives=_as_string_list(_first_present(raw, OBJECTIVE_ALIASES)),
        tools=_as_string_list(_first_present(raw, TOOL_ALIASES)),
        resources=_as_string_list(_first_present(raw, RESOURCE_ALIASES)),
    )


def _parse_levels(levels: Any) -> list[ParsedLevel]:
    if not isinstance(levels, list) or not levels:
        msg = "Levels array is required"
        raise CourseFormatError(msg)
    return [parse_level(raw, i) for i, raw in enumerate(levels, start=1)]


def parse_course_document(doc: Any) -> ParsedCourse:
    """
    Normalize a decoded course document.

    Raises:
        CourseFormatError: If the document matches neither shape, the title
            is missing, or there are no levels.
    """
    if not isinstance(doc, dict) or not doc:
        msg = "Invalid course format. Expect { route_key: [levels] } or { title, description?, levels }"
        raise CourseFormatError(msg)

    # Shape B: explicit title + levels
    if "title" in doc and "levels" in doc:
        title = doc.get("title")
        if not isinstance(title, str) or not title.strip():
            msg = "Title is required"
            raise CourseFormatError(msg)
        description = doc.get("description") or ""
        if not isinstance(description, str):
            msg = "Description must be a string"
            raise CourseFormatError(msg)
        return ParsedCourse(
            title=title.strip(),
            description=description.strip(),
            levels=_parse_levels(doc["levels"]),
        )

    # Shape A: first key holds the level array
    route_key = next(iter(doc))
    if not isinstance(doc[route_key], list):
        msg = "Invalid course format. Expect { route_key: [levels] } or { title, description?, levels }"
        raise CourseFormatError(msg)

    title = route_title(route_key)
    return ParsedCourse(
        title=title,
        description=f"Curso completo de {title.lower()}",
        levels=_parse_levels(doc[route_key]),
    )


def parse_course_bytes(raw: bytes | str) -> ParsedCourse:
    """
    Decode and normalize an uploaded course file.

    Raises:
        CourseParseError: If the payload is not UTF-8 JSON.
        CourseFormatError: If the JSON is not a course document.
    """
    try:
        doc = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = "Invalid JSON file"
        raise CourseParseError(msg) from e
    return parse_course_document(doc)
