"""
Class Classifier and Project Context

Builds a symbol table of the Java classes in a batch and tags each class
with independent role flags (page object, exception, step definition,
utility, element wrapper). The table is built in one pass before any file
is translated, then handed to the translator as a read-only value.

Each role flag is computed from one ClassInfo alone, so classification is
order-independent and running it twice gives identical records.
"""

import posixpath
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

import structlog

from pomshift.core.java import (
    CLASS_DECL_RE,
    IMPORT_RE,
    PACKAGE_RE,
    Parameter,
    match_field,
    match_method,
    modifiers,
    parse_parameters,
    split_annotations,
    step_annotation,
    strip_generics,
    visibility,
    annotation_name,
)
from pomshift.core.source import SourceDocument, iter_statements

logger = structlog.get_logger()


ELEMENT_WRAPPER_TYPES = frozenset(
    {
        "WebElement",
        "QAFWebElement",
        "QAFExtendedWebElement",
        "QAFWebComponent",
        "ExtendedWebElement",
    }
)

KNOWN_EXCEPTION_TYPES = frozenset(
    {
        "Exception",
        "RuntimeException",
        "Throwable",
        "Error",
        "AssertionError",
        "IllegalStateException",
        "IllegalArgumentException",
        "WebDriverException",
        "NoSuchElementException",
        "TimeoutException",
        "AutomationError",
    }
)

CANONICAL_ELEMENT_ACTIONS = frozenset({"click", "sendKeys", "getText"})

PAGE_SUFFIXES = ("Page", "Screen", "View")
EXCEPTION_SUFFIXES = ("Exception", "Error")
STEP_SUFFIXES = ("Steps", "Step", "StepDefs", "StepDefinitions", "Stepdefs")
UTILITY_SUFFIXES = ("Util", "Utils", "Utility", "Utilities", "Helper", "Helpers")
ELEMENT_SUFFIXES = ("Element",)

STEP_PACKAGE_SEGMENTS = frozenset({"steps", "step", "stepdefs", "stepdefinitions", "glue"})
UTILITY_PACKAGE_SEGMENTS = frozenset({"util", "utils", "utility", "utilities", "helper", "helpers"})

ELEMENT_ACTION_RE = re.compile(
    r"\.\s*(?:click|sendKeys|clear|getText|isDisplayed|isEnabled|isSelected|submit"
    r"|waitForVisible|waitForPresent|verifyVisible|assertVisible)\s*\("
)

LOCATOR_ANNOTATIONS = frozenset({"FindBy", "FindBys", "FindAll"})
TEXT_OR_CAUSE_TYPES = frozenset({"String", "Throwable", "Exception", "RuntimeException"})


@dataclass(frozen=True)
class RoleFlags:
    """Independent role classifications; more than one may be true."""

    is_page_object: bool = False
    is_exception: bool = False
    is_step_definition: bool = False
    is_utility: bool = False
    is_element_wrapper: bool = False


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type_name: str
    annotations: tuple[str, ...] = ()
    initializer: str | None = None
    is_static: bool = False

    @property
    def element_type(self) -> str:
        """Logical element type: `List<QAFWebElement>` -> `QAFWebElement`."""
        inner = re.search(r"<\s*([\w.]+)\s*>", self.type_name)
        base = inner.group(1) if inner else strip_generics(self.type_name)
        return base.replace("[]", "").strip().rsplit(".", 1)[-1]

    @property
    def has_locator_annotation(self) -> bool:
        return any(annotation_name(a) in LOCATOR_ANNOTATIONS for a in self.annotations)


@dataclass(frozen=True)
class MethodInfo:
    name: str
    return_type: str
    parameters: tuple[Parameter, ...] = ()
    visibility: str = "package"
    is_static: bool = False
    annotations: tuple[str, ...] = ()
    raw_body: tuple[str, ...] = ()
    step_description: str | None = None
    is_constructor: bool = False


@dataclass(frozen=True)
class ClassInfo:
    name: str
    package_name: str = ""
    extends: str | None = None
    implements: tuple[str, ...] = ()
    fields: tuple[FieldInfo, ...] = ()
    methods: tuple[MethodInfo, ...] = ()
    imports: tuple[str, ...] = ()
    role_flags: RoleFlags = field(default_factory=RoleFlags)
    source_path: str | None = None

    def method_names(self) -> set[str]:
        return {m.name for m in self.methods if not m.is_constructor}


# ---------------------------------------------------------------------------
# Role classifiers
# ---------------------------------------------------------------------------


def _package_segments(info: ClassInfo) -> list[str]:
    return [segment.lower() for segment in info.package_name.split(".") if segment]


def _is_page_object(info: ClassInfo) -> bool:
    named = info.name.endswith(PAGE_SUFFIXES) or any(
        "page" in segment or "screen" in segment for segment in _package_segments(info)
    )
    if not named:
        return False
    has_elements = any(
        f.element_type in ELEMENT_WRAPPER_TYPES or f.has_locator_annotation for f in info.fields
    )
    acts_on_elements = any(
        ELEMENT_ACTION_RE.search(line) for m in info.methods for line in m.raw_body
    )
    return has_elements or acts_on_elements


def _is_exception(info: ClassInfo) -> bool:
    if info.name.endswith(EXCEPTION_SUFFIXES):
        return True
    if info.extends and info.extends.rsplit(".", 1)[-1] in KNOWN_EXCEPTION_TYPES:
        return True
    # Single (message | cause) constructor delegating to super(...); no-arg
    # constructors do not count
    for method in info.methods:
        if not method.is_constructor or len(method.parameters) != 1:
            continue
        param_type = method.parameters[0].type_name.rsplit(".", 1)[-1]
        if param_type in TEXT_OR_CAUSE_TYPES and any(
            line.strip().startswith("super(") for line in method.raw_body
        ):
            return True
    return False


def _is_step_definition(info: ClassInfo) -> bool:
    if any(m.step_description is not None for m in info.methods):
        return True
    return info.name.endswith(STEP_SUFFIXES) or bool(
        STEP_PACKAGE_SEGMENTS.intersection(_package_segments(info))
    )


def _is_utility(info: ClassInfo) -> bool:
    named = info.name.endswith(UTILITY_SUFFIXES) or bool(
        UTILITY_PACKAGE_SEGMENTS.intersection(_package_segments(info))
    )
    methods = [m for m in info.methods if not m.is_constructor]
    if not named or not methods:
        return False
    static_count = sum(1 for m in methods if m.is_static)
    return static_count * 2 > len(methods)


def _is_element_wrapper(info: ClassInfo) -> bool:
    parents = {p.rsplit(".", 1)[-1] for p in (info.extends, *info.implements) if p}
    inherits_element = bool(parents & ELEMENT_WRAPPER_TYPES)
    if not (info.name.endswith(ELEMENT_SUFFIXES) or inherits_element):
        return False
    return CANONICAL_ELEMENT_ACTIONS <= info.method_names()


def classify(info: ClassInfo) -> RoleFlags:
    """Compute every role flag of one class from that class alone."""
    return RoleFlags(
        is_page_object=_is_page_object(info),
        is_exception=_is_exception(info),
        is_step_definition=_is_step_definition(info),
        is_utility=_is_utility(info),
        is_element_wrapper=_is_element_wrapper(info),
    )


# ---------------------------------------------------------------------------
# Document analysis
# ---------------------------------------------------------------------------


@dataclass
class _MethodBuilder:
    info: MethodInfo
    open_depth: int
    body: list[str] = field(default_factory=list)


@dataclass
class _ClassBuilder:
    name: str
    line: int
    body_depth: int
    extends: str | None
    implements: tuple[str, ...]
    fields: list[FieldInfo] = field(default_factory=list)
    methods: list[MethodInfo] = field(default_factory=list)


def analyze_document(doc: SourceDocument, source_path: str | None = None) -> list[ClassInfo]:
    """
    Extract classified ClassInfo records from one document.

    Nested classes are reported alongside their outer class. Records come
    back in source order.
    """
    package = ""
    imports: list[str] = []
    finished: list[tuple[int, _ClassBuilder]] = []
    stack: list[_ClassBuilder] = []
    method: _MethodBuilder | None = None
    pending: list[str] = []
    depth = 0

    for st in iter_statements(doc):
        if st.is_comment:
            if method is not None:
                method.body.extend(st.raw_lines)
            continue

        before = depth
        depth += st.opens - st.closes

        if method is not None:
            if depth <= method.open_depth:
                if st.text != "}":
                    method.body.extend(st.raw_lines)
                stack[-1].methods.append(replace(method.info, raw_body=tuple(method.body)))
                method = None
            else:
                method.body.extend(st.raw_lines)
            continue

        if not stack:
            if m := PACKAGE_RE.match(st.text):
                package = m.group(1)
                continue
            if m := IMPORT_RE.match(st.text):
                imports.append(m.group(1))
                continue

        current = stack[-1] if stack else None
        at_member_level = current is None or before == current.body_depth

        if at_member_level:
            annotations, text = split_annotations(st.text)
            annotations = pending + annotations
            if not text:
                pending = annotations
                continue
            pending = []

            decl = CLASS_DECL_RE.match(strip_generics(text))
            if decl:
                builder = _ClassBuilder(
                    name=decl.group("name"),
                    line=st.line,
                    body_depth=depth,
                    extends=(decl.group("extends") or "").split(",")[0].strip() or None,
                    implements=tuple(
                        p.strip() for p in (decl.group("implements") or "").split(",") if p.strip()
                    ),
                )
                if depth > before:
                    stack.append(builder)
                else:
                    finished.append((builder.line, builder))
                continue

            if current is not None:
                sig = match_method(text, current.name)
                if sig:
                    mods = modifiers(sig.group("mods"))
                    is_ctor = "ret" not in sig.groupdict()
                    step = step_annotation(annotations)
                    info = MethodInfo(
                        name=sig.group("name"),
                        return_type="" if is_ctor else sig.group("ret"),
                        parameters=parse_parameters(sig.group("params")),
                        visibility=visibility(mods),
                        is_static="static" in mods,
                        annotations=tuple(annotations),
                        step_description=step[1] if step else None,
                        is_constructor=is_ctor,
                    )
                    if depth > before:
                        method = _MethodBuilder(info=info, open_depth=before)
                    else:
                        inline = sig.group("end").strip()
                        body = (inline[1:-1].strip(),) if inline.startswith("{") else ()
                        current.methods.append(replace(info, raw_body=tuple(b for b in body if b)))
                    continue

                fld = match_field(text)
                if fld:
                    mods = modifiers(fld.group("mods"))
                    current.fields.append(
                        FieldInfo(
                            name=fld.group("name"),
                            type_name=fld.group("type"),
                            annotations=tuple(annotations),
                            initializer=fld.group("init"),
                            is_static="static" in mods,
                        )
                    )
                    continue

        while stack and depth < stack[-1].body_depth:
            done = stack.pop()
            finished.append((done.line, done))

    while stack:
        done = stack.pop()
        logger.debug("unclosed_class", name=done.name, path=source_path)
        finished.append((done.line, done))

    records = []
    for _, builder in sorted(finished, key=lambda item: item[0]):
        info = ClassInfo(
            name=builder.name,
            package_name=package,
            extends=builder.extends,
            implements=builder.implements,
            fields=tuple(builder.fields),
            methods=tuple(builder.methods),
            imports=tuple(imports),
            source_path=source_path,
        )
        records.append(replace(info, role_flags=classify(info)))
    return records


# ---------------------------------------------------------------------------
# Project context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectContext:
    """Read-only cross-file symbol table for one batch."""

    classes: Mapping[str, ClassInfo] = field(default_factory=lambda: MappingProxyType({}))
    modules: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __contains__(self, name: str) -> bool:
        return name in self.classes

    def __len__(self) -> int:
        return len(self.classes)

    def get(self, name: str | None) -> ClassInfo | None:
        if not name:
            return None
        return self.classes.get(name.rsplit(".", 1)[-1])

    def roles(self, name: str | None) -> RoleFlags:
        info = self.get(name)
        return info.role_flags if info else RoleFlags()

    def import_path(self, name: str, from_module: str | None) -> str | None:
        """Relative TS module specifier for `name` as seen from `from_module`."""
        target = self.modules.get(name)
        if target is None:
            return None
        base = posixpath.dirname(from_module) if from_module else ""
        relative = posixpath.relpath(target, base or ".")
        return relative if relative.startswith(".") else f"./{relative}"


def module_path(path: Path | None, root: Path | None) -> str | None:
    """Module path of a source file relative to the batch root, without suffix."""
    if path is None:
        return None
    try:
        relative = path.relative_to(root) if root else Path(path.name)
    except ValueError:
        relative = Path(path.name)
    return relative.with_suffix("").as_posix()


def build_project_context(
    documents: Iterable[SourceDocument],
    root: Path | None = None,
) -> ProjectContext:
    """
    Analysis pass over every document of a batch.

    Documents are processed in path order; for duplicate class names the
    first path wins.
    """
    classes: dict[str, ClassInfo] = {}
    modules: dict[str, str] = {}

    for doc in sorted(documents, key=lambda d: str(d.path or "")):
        module = module_path(doc.path, root)
        for info in analyze_document(doc, source_path=module):
            if info.name in classes:
                logger.debug(
                    "duplicate_class_name",
                    name=info.name,
                    kept=classes[info.name].source_path,
                    ignored=module,
                )
                continue
            classes[info.name] = info
            if module is not None:
                modules[info.name] = module

    logger.info("project_context_built", classes=len(classes))
    return ProjectContext(classes=MappingProxyType(classes), modules=MappingProxyType(modules))
