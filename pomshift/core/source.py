"""
Line-oriented source reader.

Java sources are never parsed into a tree. Instead the reader collapses
physical lines into logical statements (a statement ends at `;`, `{` or `}`
once parentheses are balanced, or at a complete annotation) and offers a
string-literal mask so callers can count braces and parentheses without
being fooled by quoted text.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class SourceDocument:
    """Immutable ordered sequence of raw lines for one input file."""

    lines: tuple[str, ...]
    path: Path | None = None

    @classmethod
    def from_text(cls, text: str, path: Path | None = None) -> "SourceDocument":
        return cls(lines=tuple(text.splitlines()), path=path)

    @classmethod
    def read(cls, path: Path, encoding: str = "utf-8") -> "SourceDocument":
        """Read a file from disk. I/O errors propagate to the caller."""
        text = Path(path).read_text(encoding=encoding)
        return cls.from_text(text, path=Path(path))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def numbered(self) -> str:
        """Line-numbered echo of the document (1-based)."""
        return "\n".join(f"{i:>5}: {line}" for i, line in enumerate(self.lines, 1))


@dataclass(frozen=True)
class Statement:
    """One logical statement collapsed from one or more physical lines."""

    text: str
    line: int  # 1-based first line
    end_line: int
    raw_lines: tuple[str, ...] = field(default_factory=tuple)

    @property
    def masked(self) -> str:
        return mask_strings(self.text)

    @property
    def is_comment(self) -> bool:
        return self.text.startswith("//") or self.text.startswith("/*")

    @property
    def is_annotation(self) -> bool:
        return self.text.startswith("@") and not self.text.startswith("@interface")

    @property
    def opens(self) -> int:
        return self.masked.count("{")

    @property
    def closes(self) -> int:
        return self.masked.count("}")


def mask_strings(text: str) -> str:
    """
    Blank out the contents of string and char literals.

    Quote characters are kept and everything between them is replaced by
    spaces, so offsets are preserved. Backticks are treated as quotes too,
    which lets the same helper scan TypeScript output.
    """
    out = []
    quote: str | None = None
    escaped = False
    for ch in text:
        if quote:
            if escaped:
                escaped = False
                out.append(" ")
            elif ch == "\\":
                escaped = True
                out.append(" ")
            elif ch == quote:
                quote = None
                out.append(ch)
            else:
                out.append(" ")
        elif ch in "\"'`":
            quote = ch
            out.append(ch)
        else:
            out.append(ch)
    return "".join(out)


def strip_line_comment(text: str) -> str:
    """Remove a trailing `//` comment that is not inside a literal."""
    masked = mask_strings(text)
    idx = masked.find("//")
    if idx <= 0:
        return text
    return text[:idx].rstrip()


def iter_statements(doc: SourceDocument) -> Iterator[Statement]:
    """
    Collapse a document into logical statements.

    Blank lines are skipped. Comments come out as their own statements;
    block comments are joined into one statement ending at `*/`.
    """
    buffer: list[str] = []
    raw: list[str] = []
    start = 0
    depth = 0
    in_block_comment = False

    def flush(end: int) -> Statement:
        text = " ".join(part for part in buffer if part)
        return Statement(text=text, line=start, end_line=end, raw_lines=tuple(raw))

    for number, line in enumerate(doc.lines, 1):
        stripped = line.strip()

        if in_block_comment:
            buffer.append(stripped)
            raw.append(line)
            if "*/" in stripped:
                in_block_comment = False
                yield flush(number)
                buffer, raw = [], []
            continue

        if not buffer:
            if not stripped:
                continue
            if stripped.startswith("//"):
                yield Statement(text=stripped, line=number, end_line=number, raw_lines=(line,))
                continue
            if stripped.startswith("/*"):
                start = number
                buffer, raw = [stripped], [line]
                if "*/" in stripped:
                    yield flush(number)
                    buffer, raw = [], []
                else:
                    in_block_comment = True
                continue
            start = number
            depth = 0

        code = strip_line_comment(stripped)
        if not code:
            continue
        buffer.append(code)
        raw.append(line)
        masked = mask_strings(code)
        depth += masked.count("(") - masked.count(")")

        if depth > 0:
            continue
        joined = " ".join(buffer)
        if joined.endswith((";", "{", "}")) or joined.startswith("@"):
            yield flush(number)
            buffer, raw = [], []

    if buffer:
        logger.debug("unterminated_statement", line=start, path=str(doc.path))
        yield flush(len(doc.lines))


def split_args(text: str) -> list[str]:
    """Split a call's argument text at top-level commas."""
    if not text.strip():
        return []
    masked = mask_strings(text)
    parts = []
    depth = 0
    last = 0
    for i, ch in enumerate(masked):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(text[last:i].strip())
            last = i + 1
    parts.append(text[last:].strip())
    return parts


def unquote_java(literal: str) -> str | None:
    """
    Return the content of a Java string expression, or None if the
    expression does not start and end with a double quote.

    Inner concatenation (`"a" + x + "b"`) is left in place for the
    locator emitter's dynamic substitution.
    """
    literal = literal.strip()
    if len(literal) < 2 or not (literal.startswith('"') and literal.endswith('"')):
        return None
    inner = literal[1:-1]
    return inner.replace('\\"', '"').replace("\\\\", "\\")
