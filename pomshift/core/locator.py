"""
Locator descriptors - decoding and Playwright emission.

QAF page objects carry their locators as strings embedded in annotations,
either as a plain `type=value` token or as a JSON object:

    @FindBy(locator = "id=submitBtn")
    @FindBy(locator = "{\"locator\":\"xpath=//button\",\"desc\":\"OK button\"}")

This module turns those strings into a typed LocatorDescriptor and renders
a descriptor as a Playwright locator call such as `locator('#submitBtn')`.
Decoding never raises: every input yields a descriptor, falling back to
`unknown` carrying the original text.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import structlog

logger = structlog.get_logger()


class LocatorType(str, Enum):
    """Locator kinds understood by the emitter."""

    XPATH = "xpath"
    CSS = "css"
    ID = "id"
    NAME = "name"
    LINK_TEXT = "linkText"
    PARTIAL_LINK_TEXT = "partialLinkText"
    CLASS_NAME = "className"
    TAG_NAME = "tagName"
    TEXT = "text"
    ROLE = "role"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    ALT = "alt"
    TITLE = "title"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: str | None) -> "LocatorType":
        """Case-insensitive lookup accepting QAF and Selenium spellings."""
        if not token:
            return cls.UNKNOWN
        return _TYPE_ALIASES.get(token.strip().lower(), cls.UNKNOWN)


_TYPE_ALIASES: dict[str, LocatorType] = {t.value.lower(): t for t in LocatorType}
_TYPE_ALIASES.update(
    {
        "cssselector": LocatorType.CSS,
        "css_selector": LocatorType.CSS,
        "link": LocatorType.LINK_TEXT,
        "link_text": LocatorType.LINK_TEXT,
        "partiallink": LocatorType.PARTIAL_LINK_TEXT,
        "partial_link_text": LocatorType.PARTIAL_LINK_TEXT,
        "class": LocatorType.CLASS_NAME,
        "class_name": LocatorType.CLASS_NAME,
        "tag": LocatorType.TAG_NAME,
        "tag_name": LocatorType.TAG_NAME,
        "alttext": LocatorType.ALT,
        "aria-label": LocatorType.LABEL,
    }
)

# Keys scanned, in order, when a structured locator has no `locator` field
STRUCTURED_KEY_PRIORITY = (
    "id",
    "xpath",
    "css",
    "name",
    "linkText",
    "partialLinkText",
    "tagName",
)

_LOCATOR_FIELD_RE = re.compile(r'"locator"\s*:\s*"((?:[^"\\]|\\.)*)"')
_DESC_FIELD_RE = re.compile(r'"desc"\s*:\s*"((?:[^"\\]|\\.)*)"')


@dataclass(frozen=True)
class LocatorDescriptor:
    """A typed value identifying how to find a UI element."""

    type: LocatorType
    value: str
    description: str | None = None

    def __post_init__(self):
        if not self.value and self.type is not LocatorType.UNKNOWN:
            raise ValueError(f"locator of type '{self.type.value}' needs a value")

    @classmethod
    def unknown(cls, raw: str, description: str | None = None) -> "LocatorDescriptor":
        return cls(type=LocatorType.UNKNOWN, value=raw, description=description)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "value": self.value,
            "description": self.description,
        }


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _split_token(token: str, description: str | None = None) -> LocatorDescriptor | None:
    """Split `type=value` at the first `=` only."""
    kind, sep, value = token.partition("=")
    if not sep:
        return None
    locator_type = LocatorType.from_token(kind)
    if locator_type is LocatorType.UNKNOWN or not value:
        return None
    return LocatorDescriptor(type=locator_type, value=value, description=description)


def _decode_structured(text: str) -> dict | None:
    """Try the raw text, then with escaped and doubled quotes undone."""
    candidates = [text, text.replace('\\"', '"')]
    if '""' in text:
        candidates.append(text.replace('""', '"'))
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(data, dict):
            return data
    return None


def _from_structured(data: dict) -> LocatorDescriptor | None:
    desc = data.get("desc")
    description = desc if isinstance(desc, str) and desc else None

    locator = data.get("locator")
    if isinstance(locator, list):
        locator = next((item for item in locator if isinstance(item, str)), None)
    if isinstance(locator, str) and locator:
        return _split_token(locator, description) or LocatorDescriptor.unknown(
            locator, description
        )

    for key in STRUCTURED_KEY_PRIORITY:
        value = data.get(key)
        if isinstance(value, str) and value:
            return LocatorDescriptor(
                type=LocatorType.from_token(key), value=value, description=description
            )
    return None


def _from_regex(text: str) -> LocatorDescriptor | None:
    unescaped = text.replace('\\"', '"')
    match = _LOCATOR_FIELD_RE.search(unescaped)
    if not match:
        return None
    desc_match = _DESC_FIELD_RE.search(unescaped)
    description = desc_match.group(1) if desc_match and desc_match.group(1) else None
    locator = match.group(1)
    if not locator:
        return None
    return _split_token(locator, description) or LocatorDescriptor.unknown(
        locator, description
    )


def parse_locator(raw: str) -> LocatorDescriptor:
    """
    Decode an embedded locator string.

    Tiers, in order: structured JSON (`locator` field, then well-known
    keys), regex extraction of a `"locator":"..."` pair, plain
    `type=value`, and finally `unknown` with the original string.
    """
    text = (raw or "").strip()
    if not text:
        return LocatorDescriptor.unknown(raw or "")

    if text.startswith("{") or '"locator"' in text:
        data = _decode_structured(text)
        if data is not None:
            descriptor = _from_structured(data)
            if descriptor is not None:
                return descriptor
        logger.debug("locator_structured_decode_failed", raw=raw)
        descriptor = _from_regex(text)
        if descriptor is not None:
            return descriptor
    else:
        descriptor = _split_token(text)
        if descriptor is not None:
            return descriptor

    logger.debug("locator_unrecognized", raw=raw)
    return LocatorDescriptor.unknown(raw)


def descriptor_from_by(method: str, value: str, description: str | None = None) -> LocatorDescriptor:
    """
    Build a descriptor from a Selenium `By.<method>(value)` call or a
    `@FindBy(<key> = value)` attribute.
    """
    locator_type = LocatorType.from_token(method)
    if locator_type is LocatorType.UNKNOWN or not value:
        return LocatorDescriptor.unknown(value, description)
    return LocatorDescriptor(type=locator_type, value=value, description=description)


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------

# `" + name + "` or `' + name + '`, and a trailing `" + name`
_CONCAT_RE = re.compile(r"""(["'])\s*\+\s*([A-Za-z_]\w*)\s*(?:\+\s*\1|$)""")


def _segments(value: str, params: set[str]) -> list[tuple[str, bool]]:
    """Split a value into (text, is_param) pieces around concatenation idioms."""
    pieces: list[tuple[str, bool]] = []
    last = 0
    for match in _CONCAT_RE.finditer(value):
        name = match.group(2)
        if name not in params:
            continue
        pieces.append((value[last:match.start()], False))
        pieces.append((name, True))
        last = match.end()
    pieces.append((value[last:], False))
    return pieces


def _escape(text: str, quote: str) -> str:
    text = text.replace("\\", "\\\\").replace(quote, "\\" + quote)
    if quote == "`":
        text = text.replace("${", "\\${")
    return text


def _name_selector(value: str, params: Iterable[str]) -> str:
    """`[name="..."]`; a static value has its quotes and backslashes escaped."""
    if not any(is_param for _, is_param in _segments(value, set(params))):
        value = value.replace("\\", "\\\\").replace('"', '\\"')
    return '[name="' + value + '"]'


def to_literal(value: str, params: Iterable[str] = (), template: bool = False) -> str:
    """
    Render `value` as a TypeScript string literal.

    A template literal is used when asked for, when the value holds a
    single quote, or when a parameter slot is substituted.
    """
    pieces = _segments(value, set(params))
    dynamic = any(is_param for _, is_param in pieces)
    if template or dynamic or "'" in value:
        body = "".join(
            "${" + text + "}" if is_param else _escape(text, "`") for text, is_param in pieces
        )
        return f"`{body}`"
    return "'" + _escape(value, "'") + "'"


def emit_locator(descriptor: LocatorDescriptor, params: Iterable[str] = ()) -> str:
    """
    Render a descriptor as a Playwright locator call (without receiver).

    >>> emit_locator(parse_locator("id=submitBtn"))
    "locator('#submitBtn')"
    """
    params = tuple(params)
    value = descriptor.value
    locator_type = descriptor.type
    if not isinstance(locator_type, LocatorType):
        locator_type = LocatorType.from_token(str(locator_type))

    match locator_type:
        case LocatorType.XPATH:
            return f"locator({to_literal('xpath=' + value, params, template=True)})"
        case LocatorType.CSS:
            return f"locator({to_literal(value, params)})"
        case LocatorType.ID:
            return f"locator({to_literal('#' + value, params)})"
        case LocatorType.NAME:
            return f"locator({to_literal(_name_selector(value, params), params)})"
        case LocatorType.LINK_TEXT | LocatorType.TEXT:
            return f"getByText({to_literal(value, params)})"
        case LocatorType.PARTIAL_LINK_TEXT:
            return f"getByText({to_literal(value, params)}, {{ exact: false }})"
        case LocatorType.CLASS_NAME:
            return f"locator({to_literal('.' + value, params)})"
        case LocatorType.TAG_NAME:
            return f"locator({to_literal(value, params)})"
        case LocatorType.ROLE:
            # Value format: "role:name" e.g., "button:Submit"
            if ":" in value:
                role, name = value.split(":", 1)
                return (
                    f"getByRole({to_literal(role, params)}, "
                    f"{{ name: {to_literal(name, params)} }})"
                )
            return f"getByRole({to_literal(value, params)})"
        case LocatorType.LABEL:
            return f"getByLabel({to_literal(value, params)})"
        case LocatorType.PLACEHOLDER:
            return f"getByPlaceholder({to_literal(value, params)})"
        case LocatorType.ALT:
            return f"getByAltText({to_literal(value, params)})"
        case LocatorType.TITLE:
            return f"getByTitle({to_literal(value, params)})"

    return f"locator({to_literal(value, params)})"
