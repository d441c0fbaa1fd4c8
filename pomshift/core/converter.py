"""
File Converter

Structural walk over one Java document. Declarations (package, imports,
classes, fields, methods) are handled here; statements inside method
bodies are handed to the statement translator, and everything is emitted
through a CodeAssembler.

Three class shapes are produced:

- step-definition classes become playwright-bdd registrations
  (`Given('phrase', async ({ page }, ...) => { ... });`),
- exception classes become `export class X extends Error`,
- every other class becomes `export class X` holding `page: Page`, with
  one async accessor per element field.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

import structlog

from pomshift.config import Settings, get_settings
from pomshift.core.assembler import CodeAssembler
from pomshift.core.classifier import (
    ELEMENT_WRAPPER_TYPES,
    LOCATOR_ANNOTATIONS,
    ClassInfo,
    FieldInfo,
    MethodInfo,
    ProjectContext,
    RoleFlags,
    analyze_document,
)
from pomshift.core.java import (
    CLASS_DECL_RE,
    IMPORT_RE,
    PACKAGE_RE,
    TYPE,
    annotation_attributes,
    annotation_name,
    match_field,
    match_method,
    modifiers,
    parse_parameters,
    split_annotations,
    step_annotation,
    string_value,
    strip_generics,
)
from pomshift.core.locator import (
    LocatorDescriptor,
    LocatorType,
    descriptor_from_by,
    emit_locator,
    parse_locator,
    to_literal,
)
from pomshift.core.pattern_service import PatternRecognizer, RecognizedPattern, safe_recognize
from pomshift.core.source import SourceDocument, Statement, iter_statements, split_args
from pomshift.core.translator import (
    LITERAL_RE,
    ConversionContext,
    Diagnostic,
    translate_expression,
    translate_statement,
)

logger = structlog.get_logger()

BDD_IMPORT = "import { createBdd } from 'playwright-bdd';"
BDD_BINDINGS = "const { Given, When, Then, Step } = createBdd();"

STEP_KEYWORDS = {
    "Given": "Given",
    "When": "When",
    "Then": "Then",
    "And": "Step",
    "But": "Step",
    "Step": "Step",
    "QAFTestStep": "Step",
}

_NUMERIC_TYPES = frozenset(
    {"int", "Integer", "long", "Long", "double", "Double", "float", "Float", "short", "Short", "byte", "Byte"}
)
_STRING_TYPES = frozenset({"String", "char", "Character", "CharSequence"})
_LIST_RE = re.compile(r"^(?:List|ArrayList|LinkedList|Collection|Set|HashSet|Iterable)\s*<\s*(.+)\s*>$")
_PLACEHOLDER_RE = re.compile(r"\{(?:\d+|[A-Za-z_][\w-]*)\}")
_NEW_RE = re.compile(r"^new\s+[\w.]+\s*\((.*)\)$")

# Control-flow headers inside method bodies
_CONDITION_RE = re.compile(r"^(?P<kw>if|else\s+if|while)\s*\((?P<cond>.*)\)\s*\{$")
_FOR_EACH_RE = re.compile(rf"^for\s*\(\s*(?:final\s+)?{TYPE}\s+(?P<var>\w+)\s*:\s*(?P<items>.+)\)\s*\{{$")
_FOR_RE = re.compile(r"^for\s*\(\s*(?:int|long)\s+(?P<rest>\w+\s*=.*)\)\s*\{$")
_CATCH_RE = re.compile(r"^catch\s*\(\s*(?:final\s+)?[\w.|\s]+?\s+(?P<var>\w+)\s*\)\s*\{$")
_PLAIN_BLOCK_RE = re.compile(r"^(?P<kw>else|try|finally)\s*\{$")


def ts_type(java_type: str | None) -> str:
    """Map a Java type name to its TypeScript counterpart."""
    if not java_type:
        return "void"
    java_type = java_type.strip()
    if java_type.endswith("[]"):
        return ts_type(java_type[:-2]) + "[]"
    if m := _LIST_RE.match(java_type):
        return ts_type(m.group(1)) + "[]"
    base = strip_generics(java_type).rsplit(".", 1)[-1]
    if base in _STRING_TYPES:
        return "string"
    if base in _NUMERIC_TYPES:
        return "number"
    if base in ("boolean", "Boolean"):
        return "boolean"
    if base in ("void", "Void"):
        return "void"
    if base == "Object":
        return "unknown"
    if base in ELEMENT_WRAPPER_TYPES:
        return "Locator"
    return base


def step_phrase(phrase: str) -> str:
    """QAF `{0}` / `{name}` placeholders become Cucumber `{string}`."""
    return _PLACEHOLDER_RE.sub("{string}", phrase)


def field_descriptor(info: FieldInfo) -> LocatorDescriptor | None:
    """Locator of an element field from its annotation or initializer."""
    for annotation in info.annotations:
        if annotation_name(annotation) not in LOCATOR_ANNOTATIONS:
            continue
        attrs = annotation_attributes(annotation)
        if "locator" in attrs:
            value = string_value(attrs["locator"])
            return parse_locator(value) if value else None
        if "how" in attrs and "using" in attrs:
            how = attrs["how"].rsplit(".", 1)[-1]
            return descriptor_from_by(how, string_value(attrs["using"]) or "")
        for key, expression in attrs.items():
            value = string_value(expression)
            if value is None:
                continue
            descriptor = descriptor_from_by(key, value)
            if descriptor.type is not LocatorType.UNKNOWN:
                return descriptor
    if info.initializer and (m := _NEW_RE.match(info.initializer.strip())):
        args = split_args(m.group(1))
        value = string_value(args[0]) if args else None
        if value:
            return parse_locator(value)
    return None


class FrameKind(str, Enum):
    CLASS = "class"
    METHOD = "method"
    BLOCK = "block"
    OPAQUE = "opaque"
    SKIP = "skip"


@dataclass
class _Frame:
    kind: FrameKind
    body_depth: int
    ts_scope: bool = False
    info: ClassInfo | None = None
    style: str = "class"
    method: MethodInfo | None = None
    mark: int = 0


@dataclass
class ConversionResult:
    """Output of one file conversion."""

    code: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    patterns: dict[str, list[RecognizedPattern]] = field(default_factory=dict)
    dropped_closers: int = 0

    def skipped_report(self) -> str:
        if not self.diagnostics:
            return ""
        return "\n".join(str(d) for d in self.diagnostics) + "\n"


class FileConverter:
    """
    Converts one SourceDocument.

    A converter instance is single-use; call convert() once.
    """

    def __init__(
        self,
        doc: SourceDocument,
        project: ProjectContext | None = None,
        recognizer: PatternRecognizer | None = None,
        settings: Settings | None = None,
        module: str | None = None,
    ):
        self.doc = doc
        self.project = project
        self.recognizer = recognizer
        self.settings = settings or get_settings()
        self.ctx = ConversionContext(project=project, module=module)
        self.asm = CodeAssembler(base_imports=list(self.settings.base_imports))
        self.local_classes = analyze_document(doc, source_path=module)
        self._local = {info.name: info for info in reversed(self.local_classes)}
        self.frames: list[_Frame] = []
        self.pending: list[str] = []
        self.patterns: dict[str, list[RecognizedPattern]] = {}
        self.bdd_emitted = False

    # -- helpers ---------------------------------------------------------

    @property
    def top(self) -> _Frame | None:
        return self.frames[-1] if self.frames else None

    def _diagnose(self, st: Statement, reason: str) -> None:
        self.ctx.diagnostics.append(Diagnostic(st.line, reason, st.text))

    def _todo(self, st: Statement) -> None:
        self._diagnose(st, "emitted as TODO")
        self.asm.emit(f"// TODO: {st.text}")

    def _roles(self, info: ClassInfo) -> RoleFlags:
        if self.project is not None and self.project.get(info.name) is not None:
            return self.project.roles(info.name)
        return info.role_flags

    def _project_class(self, name: str | None) -> ClassInfo | None:
        if not name:
            return None
        if self.project is not None and (info := self.project.get(name)) is not None:
            return info
        return self._local.get(name.rsplit(".", 1)[-1])

    def _ancestors(self, info: ClassInfo) -> tuple[ClassInfo, ...]:
        chain = []
        seen = {info.name}
        parent = self._project_class(info.extends)
        while parent is not None and parent.name not in seen:
            chain.append(parent)
            seen.add(parent.name)
            parent = self._project_class(parent.extends)
        return tuple(chain)

    def _is_element_field(self, info: FieldInfo) -> bool:
        if info.has_locator_annotation or info.element_type in ELEMENT_WRAPPER_TYPES:
            return True
        wrapper = self._project_class(info.element_type)
        return wrapper is not None and self._roles(wrapper).is_element_wrapper

    def _is_page_type(self, name: str) -> bool:
        info = self._project_class(name)
        return info is not None and self._roles(info).is_page_object

    def _type_ref(self, java_type: str) -> str:
        mapped = ts_type(java_type)
        bare = mapped.removesuffix("[]")
        if self._project_class(bare) is not None:
            self.ctx.import_class(bare)
        return mapped

    # -- walk ------------------------------------------------------------

    def convert(self) -> ConversionResult:
        for st in iter_statements(self.doc):
            if st.is_comment:
                self._comment(st)
                continue
            self._statement(st)

        for statement in self.ctx.imports:
            self.asm.add_import(statement)
        code = self.asm.render()
        return ConversionResult(
            code=code,
            diagnostics=list(self.ctx.diagnostics),
            classes=self.local_classes,
            patterns=self.patterns,
            dropped_closers=self.asm.dropped_closers,
        )

    def _comment(self, st: Statement) -> None:
        frame = self.top
        if frame is not None and frame.kind in (FrameKind.SKIP, FrameKind.OPAQUE):
            return
        if frame is not None and frame.style == "exception":
            return
        for line in st.raw_lines:
            line = line.strip()
            self.asm.emit(f" {line}" if line.startswith("*") else line)

    def _statement(self, st: Statement) -> None:
        before = self.ctx.depth
        self.ctx.depth += st.opens - st.closes
        if self.ctx.depth < 0:
            self.ctx.depth = 0
            self.asm.close()

        frame = self.top
        closers_only = not st.text.strip("});")
        if closers_only and (frame is None or frame.kind is not FrameKind.OPAQUE):
            pass
        elif frame is None:
            self._top_level(st, before)
        elif frame.kind is FrameKind.SKIP:
            pass
        elif frame.kind is FrameKind.OPAQUE:
            self._todo(st)
        elif frame.kind in (FrameKind.METHOD, FrameKind.BLOCK):
            self._body_statement(st, frame)
        elif frame.kind is FrameKind.CLASS:
            if before == frame.body_depth:
                self._member(st, frame)

        self._unwind()

    def _unwind(self) -> None:
        while self.frames and self.ctx.depth < self.frames[-1].body_depth:
            frame = self.frames.pop()
            if frame.ts_scope:
                self.asm.close()
            if frame.kind is FrameKind.METHOD:
                self._finish_method(frame)
            elif frame.kind is FrameKind.CLASS:
                self.asm.blank()

    # -- top level -------------------------------------------------------

    def _top_level(self, st: Statement, before: int) -> None:
        if PACKAGE_RE.match(st.text):
            self._diagnose(st, "package declaration")
            return
        if IMPORT_RE.match(st.text):
            self._diagnose(st, "source import")
            return
        annotations, text = split_annotations(st.text)
        if not text:
            self.pending.extend(annotations)
            return
        self.pending = []
        decl = CLASS_DECL_RE.match(strip_generics(text))
        if decl:
            self._open_class(st, decl)
            return
        if self.ctx.depth > before:
            self.frames.append(_Frame(FrameKind.SKIP, self.ctx.depth))
        self._diagnose(st, "no pattern match")

    # -- classes ---------------------------------------------------------

    def _open_class(self, st: Statement, decl: re.Match) -> None:
        name = decl.group("name")
        depth = self.ctx.depth
        info = self._local.get(name) or ClassInfo(name=name)

        if decl.group("kind") != "class":
            self._diagnose(st, f"unsupported {decl.group('kind')} declaration")
            self.frames.append(_Frame(FrameKind.SKIP, depth))
            return

        roles = self._roles(info)
        self.ctx.class_name = name
        self.ctx.ancestors = self._ancestors(info)
        self.ctx.element_accessors = {f.name for f in info.fields if self._is_element_field(f)}
        for ancestor in self.ctx.ancestors:
            self.ctx.element_accessors |= {f.name for f in ancestor.fields if self._is_element_field(f)}
        methods = [m for m in info.methods if not m.is_constructor]
        self.ctx.method_names = {m.name for m in methods}
        self.ctx.static_methods = {m.name for m in methods if m.is_static}
        self.ctx.functions = set()

        if roles.is_exception:
            self._open_exception(info)
            style, ts_scope = "exception", True
        elif roles.is_step_definition:
            self._open_steps(info)
            self.ctx.class_name = None
            self.ctx.functions = {m.name for m in methods if m.step_description is None}
            style, ts_scope = "steps", False
        else:
            self._open_page_class(info)
            style, ts_scope = "class", True

        frame = _Frame(FrameKind.CLASS, depth, ts_scope=ts_scope, info=info, style=style)
        self.frames.append(frame)
        rest = decl.group("rest").strip()
        if rest.startswith("}") and self.ctx.depth == depth:
            # `class X {}` on one line
            self.frames.pop()
            if ts_scope:
                self.asm.close()

    def _open_exception(self, info: ClassInfo) -> None:
        parent = self._project_class(info.extends)
        base = "Error"
        if parent is not None and self._roles(parent).is_exception:
            base = parent.name
            self.ctx.import_class(parent.name)
        self.asm.open(f"export class {info.name} extends {base} {{")
        self.asm.open("constructor(message?: string) {")
        self.asm.emit("super(message);", f"this.name = '{info.name}';")
        self.asm.close()

    def _open_steps(self, info: ClassInfo) -> None:
        if self.bdd_emitted:
            return
        self.bdd_emitted = True
        self.ctx.add_import(BDD_IMPORT)
        self.asm.emit(BDD_BINDINGS)
        self.asm.blank()

    def _open_page_class(self, info: ClassInfo) -> None:
        parent = self._project_class(info.extends)
        inherits = parent is not None and self._is_page_type(parent.name)
        if inherits:
            self.ctx.import_class(parent.name)
            self.asm.open(f"export class {info.name} extends {parent.name} {{")
            self.asm.open("constructor(page: Page) {")
            self.asm.emit("super(page);")
        else:
            self.asm.open(f"export class {info.name} {{")
            self.asm.emit("readonly page: Page;")
            self.asm.blank()
            self.asm.open("constructor(page: Page) {")
            self.asm.emit("this.page = page;")
        self.asm.close()

    # -- members ---------------------------------------------------------

    def _member(self, st: Statement, frame: _Frame) -> None:
        annotations, text = split_annotations(st.text)
        annotations = self.pending + annotations
        if not text:
            self.pending = annotations
            return
        self.pending = []
        opened = self.ctx.depth > frame.body_depth

        if frame.style == "exception":
            self._diagnose(st, "exception class member")
            if opened:
                self.frames.append(_Frame(FrameKind.SKIP, self.ctx.depth))
            return

        if CLASS_DECL_RE.match(strip_generics(text)):
            self._diagnose(st, "nested class")
            if opened:
                self.frames.append(_Frame(FrameKind.SKIP, self.ctx.depth))
            return

        sig = match_method(text, frame.info.name if frame.info else None)
        if sig:
            self._method(st, frame, sig, annotations, opened)
            return

        fld = match_field(text)
        if fld:
            self._field(st, frame, fld, annotations)
            return

        self._diagnose(st, "no pattern match")
        if opened:
            self.frames.append(_Frame(FrameKind.SKIP, self.ctx.depth))

    def _field(self, st: Statement, frame: _Frame, fld: re.Match, annotations: list[str]) -> None:
        mods = modifiers(fld.group("mods"))
        info = FieldInfo(
            name=fld.group("name"),
            type_name=fld.group("type"),
            annotations=tuple(annotations),
            initializer=fld.group("init"),
            is_static="static" in mods,
        )
        if self._is_element_field(info):
            if frame.style == "steps":
                self._diagnose(st, "element field outside page object")
                return
            descriptor = field_descriptor(info)
            if descriptor is None:
                self._diagnose(st, "element field without locator")
                descriptor = LocatorDescriptor.unknown(info.name)
            self.asm.blank()
            if descriptor.description:
                self.asm.comment(descriptor.description)
            self.asm.open(f"async {info.name}(): Promise<Locator> {{")
            self.asm.emit(f"return this.page.{emit_locator(descriptor)};")
            self.asm.close()
            return

        init = (info.initializer or "").strip()
        if init and LITERAL_RE.match(init):
            value = re.sub(r"(?<=[0-9])[lLdDfF]$", "", init)
            if frame.style == "steps":
                self.asm.emit(f"const {info.name} = {value};")
                return
            prefix = "static " if info.is_static else ""
            readonly = "readonly " if "final" in mods else ""
            self.asm.emit(f"{prefix}{readonly}{info.name}: {ts_type(info.type_name)} = {value};")
            return

        self._diagnose(st, "unsupported field")

    # -- methods ---------------------------------------------------------

    def _method(
        self,
        st: Statement,
        frame: _Frame,
        sig: re.Match,
        annotations: list[str],
        opened: bool,
    ) -> None:
        is_ctor = "ret" not in sig.groupdict()
        if is_ctor:
            self._diagnose(st, "source constructor")
            if opened:
                self.frames.append(_Frame(FrameKind.SKIP, self.ctx.depth))
            return

        end = sig.group("end").strip()
        if end == ";":
            self._diagnose(st, "abstract method")
            return

        mods = modifiers(sig.group("mods"))
        params = parse_parameters(sig.group("params"))
        info = MethodInfo(
            name=sig.group("name"),
            return_type=sig.group("ret"),
            parameters=params,
            is_static="static" in mods,
            annotations=tuple(annotations),
        )
        names = [p.name for p in params]
        typed = [f"{p.name}: {self._type_ref(p.type_name)}" for p in params]
        step = step_annotation(annotations)

        self.asm.blank()
        mark = self.asm.mark()
        if frame.style == "steps" and step is not None:
            keyword = STEP_KEYWORDS.get(step[0], "Step")
            phrase = to_literal(step_phrase(step[1]))
            self.asm.open(f"{keyword}({phrase}, async ({', '.join(['{ page }', *typed])}) => {{", "});")
            self.ctx.enter_method(names, page_ref="page", self_ref=None)
            self._page_fields(frame, info, st)
        elif frame.style == "steps":
            ret = self._type_ref(info.return_type)
            header = ", ".join(["page: Page", *typed])
            self.asm.open(f"async function {info.name}({header}): Promise<{ret}> {{")
            self.ctx.enter_method(names, page_ref="page", self_ref=None)
            self._page_fields(frame, info, st)
        elif info.is_static:
            ret = self._type_ref(info.return_type)
            header = ", ".join(["page: Page", *typed])
            self.asm.open(f"static async {info.name}({header}): Promise<{ret}> {{")
            self.ctx.enter_method(names, page_ref="page", self_ref=None)
        else:
            ret = self._type_ref(info.return_type)
            self.asm.open(f"async {info.name}({', '.join(typed)}): Promise<{ret}> {{")
            self.ctx.enter_method(names, page_ref="this.page", self_ref="this")

        method_frame = _Frame(
            FrameKind.METHOD, self.ctx.depth, ts_scope=True, method=info, mark=mark
        )
        if opened:
            self.frames.append(method_frame)
            return

        # `void m() { body; }` on one line
        inline = end[1:].rstrip("}").strip() if end.startswith("{") else ""
        if inline:
            body = Statement(text=inline, line=st.line, end_line=st.end_line, raw_lines=(inline,))
            self.asm.emit(*translate_statement(body, self.ctx))
        self.asm.close()
        self._finish_method(method_frame)

    def _page_fields(self, frame: _Frame, info: MethodInfo, st: Statement) -> None:
        """Instantiate page-object fields a step body refers to."""
        if frame.info is None:
            return
        source = self._local_method(frame.info, info.name)
        body = "\n".join(source.raw_body) if source else ""
        for fld in frame.info.fields:
            if not self._is_page_type(fld.element_type):
                continue
            if re.search(rf"\b{re.escape(fld.name)}\b", body):
                self.ctx.import_class(fld.element_type)
                self.ctx.locals[fld.name] = fld.element_type
                self.asm.emit(f"const {fld.name} = new {fld.element_type}(page);")

    @staticmethod
    def _local_method(info: ClassInfo, name: str) -> MethodInfo | None:
        for method in info.methods:
            if method.name == name and not method.is_constructor:
                return method
        return None

    def _finish_method(self, frame: _Frame) -> None:
        actions = self.ctx.leave_method()
        patterns = safe_recognize(self.recognizer, actions)
        if not patterns or frame.method is None:
            return
        self.patterns[frame.method.name] = patterns
        best = patterns[0]
        note = f"// Pattern: {best.name} ({best.confidence:.2f})"
        if best.description:
            note += f" - {best.description}"
        self.asm.insert(frame.mark, note)

    # -- method bodies ---------------------------------------------------

    def _body_statement(self, st: Statement, frame: _Frame) -> None:
        text = st.text
        if text.startswith("}"):
            rest = text[1:].strip()
            if not rest or rest == ";":
                return
            if frame.kind is FrameKind.BLOCK and st.opens:
                header = self._control_header(rest)
                if header is not None:
                    self.asm.chain(f"}} {header}")
                    return
            self._todo(st)
            return

        if st.opens > st.closes:
            header = self._control_header(text)
            if header is not None:
                self.asm.open(header)
                self.frames.append(_Frame(FrameKind.BLOCK, self.ctx.depth, ts_scope=True))
            else:
                self._todo(st)
                self.frames.append(_Frame(FrameKind.OPAQUE, self.ctx.depth))
            return

        if st.closes > st.opens and text.endswith("}"):
            inner = text[:-1].strip()
            if inner:
                body = Statement(text=inner, line=st.line, end_line=st.end_line, raw_lines=st.raw_lines)
                self.asm.emit(*translate_statement(body, self.ctx))
            return

        self.asm.emit(*translate_statement(st, self.ctx))

    def _control_header(self, text: str) -> str | None:
        if m := _CONDITION_RE.match(text):
            keyword = " ".join(m.group("kw").split())
            return f"{keyword} ({translate_expression(m.group('cond'), self.ctx)}) {{"
        if m := _FOR_EACH_RE.match(text):
            self.ctx.locals[m.group("var")] = ""
            items = translate_expression(m.group("items").strip(), self.ctx)
            return f"for (const {m.group('var')} of {items}) {{"
        if m := _FOR_RE.match(text):
            return f"for (let {m.group('rest')}) {{"
        if m := _CATCH_RE.match(text):
            return f"catch ({m.group('var')}) {{"
        if m := _PLAIN_BLOCK_RE.match(text):
            return f"{m.group('kw')} {{"
        return None


def convert_document(
    doc: SourceDocument,
    project: ProjectContext | None = None,
    recognizer: PatternRecognizer | None = None,
    settings: Settings | None = None,
    module: str | None = None,
) -> ConversionResult:
    """Convert one document to Playwright TypeScript."""
    result = FileConverter(
        doc, project=project, recognizer=recognizer, settings=settings, module=module
    ).convert()
    logger.debug(
        "document_converted",
        path=str(doc.path) if doc.path else None,
        diagnostics=len(result.diagnostics),
        dropped_closers=result.dropped_closers,
    )
    return result
