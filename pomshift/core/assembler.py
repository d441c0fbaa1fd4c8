"""
Code Assembler

Collects translated lines and imports for one output file and renders a
structurally closed TypeScript document.

Scopes are tracked as a stack of closer tokens (`}` for classes and
methods, `});` for step registrations). Closing an empty stack is a no-op
and unclosed scopes are closed at render time, so the output is balanced
even when the source structure could not be followed.
"""

from dataclasses import dataclass, field

import structlog

from pomshift.core.source import mask_strings

logger = structlog.get_logger()

INDENT = "  "


@dataclass
class _Line:
    depth: int
    text: str


@dataclass
class CodeAssembler:
    base_imports: list[str] = field(default_factory=list)
    dropped_closers: int = 0
    _imports: dict[str, None] = field(default_factory=dict, init=False, repr=False)
    _body: list[_Line] = field(default_factory=list, init=False, repr=False)
    _scopes: list[str] = field(default_factory=list, init=False, repr=False)

    @property
    def depth(self) -> int:
        return len(self._scopes)

    @property
    def imports(self) -> list[str]:
        """Base imports first, then per-file imports; exact-text dedup."""
        return list(dict.fromkeys([*self.base_imports, *self._imports]))

    def add_import(self, statement: str) -> None:
        self._imports.setdefault(statement, None)

    def emit(self, *lines: str) -> None:
        for line in lines:
            self._body.append(_Line(self.depth, line))

    def comment(self, text: str) -> None:
        self.emit(f"// {text}" if text else "//")

    def blank(self) -> None:
        if self._body and self._body[-1].text:
            self._body.append(_Line(0, ""))

    def open(self, line: str, closer: str = "}") -> None:
        """Emit a scope opener and remember how to close it."""
        self.emit(line)
        self._scopes.append(closer)

    def chain(self, line: str) -> None:
        """Replace the innermost closer with a continuation header (`} else {`)."""
        if not self._scopes:
            self.open(line)
            return
        closer = self._scopes.pop()
        self.emit(line)
        self._scopes.append(closer)

    def close(self) -> bool:
        """Emit the closer of the innermost scope; drop it if none is open."""
        if not self._scopes:
            self.dropped_closers += 1
            logger.debug("spurious_closer_dropped")
            return False
        closer = self._scopes.pop()
        self.emit(closer)
        return True

    def mark(self) -> int:
        """Position of the next emitted line, for a later insert()."""
        return len(self._body)

    def insert(self, position: int, *lines: str) -> None:
        """Insert lines before `position` at that line's indentation."""
        depth = self._body[position].depth if position < len(self._body) else self.depth
        for offset, line in enumerate(lines):
            self._body.insert(position + offset, _Line(depth, line))

    def render(self) -> str:
        """Render the document; still-open scopes are closed at the end."""
        out = list(self.imports)
        if out:
            out.append("")

        body = list(self._body)
        while body and not body[-1].text:
            body.pop()
        if self._scopes:
            logger.debug("scopes_padded", count=len(self._scopes))
        pending = list(self._scopes)
        while pending:
            closer = pending.pop()
            body.append(_Line(len(pending), closer))

        out.extend(INDENT * line.depth + line.text if line.text else "" for line in body)
        return "\n".join(out) + "\n"


def count_scope_tokens(text: str) -> tuple[int, int]:
    """Count `{` and `}` outside string literals and comments."""
    opens = closes = 0
    in_block = False
    for line in text.splitlines():
        if in_block or line.lstrip().startswith("/*"):
            in_block = "*/" not in line
            continue
        masked = mask_strings(line)
        idx = masked.find("//")
        if idx >= 0:
            masked = masked[:idx]
        opens += masked.count("{")
        closes += masked.count("}")
    return opens, closes
