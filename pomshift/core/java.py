"""
Regex shapes for Java declarations.

Regex-based recognition of the declarations that matter to page objects:
classes, fields, methods, constructors and annotations. Anything the
shapes do not recognize is left to the caller's fallback policy.
"""

import re
from dataclasses import dataclass

from pomshift.core.source import mask_strings, split_args, unquote_java

TYPE = r"[\w.$]+(?:\s*<[^(){};=]*>)?(?:\s*\[\s*\])*"

CLASS_DECL_RE = re.compile(
    r"^(?P<mods>(?:(?:public|private|protected|abstract|final|static|sealed)\s+)*)"
    r"(?P<kind>class|interface|enum)\s+(?P<name>\w+)"
    r"(?:\s+extends\s+(?P<extends>[\w.]+(?:\s*,\s*[\w.]+)*))?"
    r"(?:\s+implements\s+(?P<implements>[\w.]+(?:\s*,\s*[\w.]+)*))?"
    r"\s*\{(?P<rest>.*)$"
)

METHOD_DECL_RE = re.compile(
    r"^(?P<mods>(?:(?:public|private|protected|static|final|abstract|synchronized|native|default)\s+)*)"
    r"(?:<[^>]+>\s+)?"
    rf"(?P<ret>{TYPE})\s+(?P<name>\w+)\s*\((?P<params>.*)\)"
    r"\s*(?:throws\s+[\w.,\s]+?)?\s*(?P<end>\{.*|;)$"
)

CTOR_DECL_RE = re.compile(
    r"^(?P<mods>(?:(?:public|private|protected)\s+)*)"
    r"(?P<name>\w+)\s*\((?P<params>.*)\)"
    r"\s*(?:throws\s+[\w.,\s]+?)?\s*(?P<end>\{.*)$"
)

FIELD_DECL_RE = re.compile(
    r"^(?P<mods>(?:(?:public|private|protected|static|final|transient|volatile)\s+)*)"
    rf"(?P<type>{TYPE})\s+(?P<name>\w+)\s*(?:=\s*(?P<init>.+?))?\s*;$"
)

PACKAGE_RE = re.compile(r"^package\s+([\w.]+)\s*;$")
IMPORT_RE = re.compile(r"^import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;$")

KEYWORDS = frozenset(
    {
        "return", "new", "else", "throw", "case", "if", "for", "while", "do",
        "switch", "catch", "try", "finally", "synchronized", "assert", "goto",
    }
)

MODIFIER_WORDS = frozenset(
    {"public", "private", "protected", "static", "final", "abstract", "synchronized", "native", "default"}
)

STEP_ANNOTATIONS = frozenset({"QAFTestStep", "Given", "When", "Then", "And", "But", "Step"})

_GENERICS_RE = re.compile(r"<[^<>()]*>")
_ANNOTATION_NAME_RE = re.compile(r"^@([\w.]+)")


@dataclass(frozen=True)
class Parameter:
    name: str
    type_name: str


def strip_generics(text: str) -> str:
    """Remove (nested) generic argument lists from a declaration."""
    previous = None
    while previous != text:
        previous = text
        text = _GENERICS_RE.sub("", text)
    return text


def modifiers(mods: str | None) -> set[str]:
    return set((mods or "").split())


def visibility(mods: set[str]) -> str:
    for candidate in ("public", "private", "protected"):
        if candidate in mods:
            return candidate
    return "package"


def match_method(text: str, class_name: str | None = None) -> re.Match | None:
    """Match a method or constructor declaration; None for anything else."""
    if class_name:
        ctor = CTOR_DECL_RE.match(text)
        if ctor and ctor.group("name") == class_name:
            return ctor
    match = METHOD_DECL_RE.match(text)
    if not match:
        return None
    ret = match.group("ret")
    if ret in KEYWORDS or ret in MODIFIER_WORDS or match.group("name") in KEYWORDS:
        return None
    return match


def match_field(text: str) -> re.Match | None:
    match = FIELD_DECL_RE.match(text)
    if not match or match.group("type") in KEYWORDS | MODIFIER_WORDS:
        return None
    return match


def parse_parameters(text: str) -> tuple[Parameter, ...]:
    """Parse `String user, final int count` into Parameter records."""
    params = []
    for raw in split_args(text):
        _, raw = split_annotations(raw)
        tokens = [t for t in raw.replace("...", "[] ").split() if t != "final"]
        if len(tokens) < 2:
            continue
        params.append(Parameter(name=tokens[-1], type_name=" ".join(tokens[:-1])))
    return tuple(params)


def split_annotations(text: str) -> tuple[list[str], str]:
    """Split leading annotations off a statement."""
    annotations = []
    text = text.strip()
    while text.startswith("@") and not text.startswith("@interface"):
        match = _ANNOTATION_NAME_RE.match(text)
        if not match:
            break
        end = match.end()
        rest = text[end:]
        if rest.lstrip().startswith("("):
            offset = end + (len(rest) - len(rest.lstrip()))
            close = _matching_paren(text, offset)
            end = close + 1 if close >= 0 else len(text)
        annotations.append(text[:end].strip())
        text = text[end:].strip()
    return annotations, text


def _matching_paren(text: str, open_index: int) -> int:
    masked = mask_strings(text)
    depth = 0
    for i in range(open_index, len(masked)):
        if masked[i] == "(":
            depth += 1
        elif masked[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def annotation_name(annotation: str) -> str:
    match = _ANNOTATION_NAME_RE.match(annotation)
    return match.group(1).rsplit(".", 1)[-1] if match else ""


def annotation_attributes(annotation: str) -> dict[str, str]:
    """
    Attributes of an annotation as raw expressions.

    A single positional argument is returned under the key `value`.
    """
    start = annotation.find("(")
    if start < 0 or not annotation.endswith(")"):
        return {}
    attributes = {}
    for part in split_args(annotation[start + 1:-1]):
        masked = mask_strings(part)
        eq = masked.find("=")
        if eq > 0 and re.match(r"^\w+$", part[:eq].strip()):
            attributes[part[:eq].strip()] = part[eq + 1:].strip()
        elif part:
            attributes.setdefault("value", part)
    return attributes


def string_value(expression: str | None) -> str | None:
    """Content of a string expression, joining `"a" + "b"` constant concatenations."""
    if expression is None:
        return None
    return unquote_java(re.sub(r'"\s*\+\s*"', "", expression))


def step_annotation(annotations: list[str]) -> tuple[str, str] | None:
    """Return (keyword, phrase) for the first step annotation, if any."""
    for annotation in annotations:
        name = annotation_name(annotation)
        if name not in STEP_ANNOTATIONS:
            continue
        attrs = annotation_attributes(annotation)
        phrase = string_value(attrs.get("description") or attrs.get("value"))
        return name, phrase or ""
    return None
