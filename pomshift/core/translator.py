"""
Statement Translator

Rewrites one logical Java statement into Playwright TypeScript using an
ordered table of shape rules. Each rule pairs a regex with a transform;
the first rule whose regex matches and whose transform accepts the match
wins. Precedence is the order of RULES:

    wait  ->  action  ->  sleep  ->  assertion  ->  passthrough

No rule means no translation: inside a method body the statement is kept
as a `// TODO:` comment, outside one it is dropped. Both cases are
recorded as diagnostics with the 1-based source line.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import structlog

from pomshift.core.classifier import ClassInfo, ProjectContext
from pomshift.core.java import KEYWORDS, TYPE
from pomshift.core.locator import descriptor_from_by, emit_locator, parse_locator
from pomshift.core.pattern_service import RecordedAction
from pomshift.core.source import Statement, mask_strings, split_args, unquote_java

logger = structlog.get_logger()


class RuleFamily(str, Enum):
    """Rule families in precedence order."""

    WAIT = "wait"
    ACTION = "action"
    SLEEP = "sleep"
    ASSERTION = "assertion"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class Diagnostic:
    """A skipped or commented-out source line."""

    line: int
    reason: str
    text: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.reason}: {self.text}"


@dataclass
class ConversionContext:
    """Per-file mutable translation state."""

    project: ProjectContext | None = None
    module: str | None = None
    class_name: str | None = None
    depth: int = 0
    in_method: bool = False
    element_accessors: set[str] = field(default_factory=set)
    imports: dict[str, None] = field(default_factory=dict)
    method_names: set[str] = field(default_factory=set)
    static_methods: set[str] = field(default_factory=set)
    functions: set[str] = field(default_factory=set)
    ancestors: tuple[ClassInfo, ...] = ()
    parameters: list[str] = field(default_factory=list)
    locals: dict[str, str] = field(default_factory=dict)
    page_ref: str = "this.page"
    self_ref: str | None = "this"
    actions: list[RecordedAction] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def scope_names(self) -> list[str]:
        return [*self.parameters, *self.locals]

    def add_import(self, statement: str) -> None:
        self.imports.setdefault(statement, None)

    def import_class(self, name: str) -> None:
        """Import a project class into the current module, if it lives elsewhere."""
        if self.project is None or name == self.class_name:
            return
        path = self.project.import_path(name, self.module)
        if path and self.project.modules.get(name) != self.module:
            self.add_import(f"import {{ {name} }} from '{path}';")

    def enter_method(self, parameters: list[str], page_ref: str, self_ref: str | None) -> None:
        self.in_method = True
        self.parameters = list(parameters)
        self.locals = {}
        self.page_ref = page_ref
        self.self_ref = self_ref
        self.actions = []

    def leave_method(self) -> list[RecordedAction]:
        actions = self.actions
        self.in_method = False
        self.parameters = []
        self.locals = {}
        self.page_ref = "this.page"
        self.self_ref = "this"
        self.actions = []
        return actions

    def record(self, action: str, target: str | None = None, value: str | None = None) -> None:
        self.actions.append(RecordedAction(action=action, target=target, value=value))


Transform = Callable[[re.Match, ConversionContext], list[str] | None]


@dataclass(frozen=True)
class Rule:
    """A (shape, transform) pair; the transform may decline with None."""

    name: str
    family: RuleFamily
    pattern: re.Pattern
    transform: Transform

    def apply(self, text: str, ctx: ConversionContext) -> list[str] | None:
        match = self.pattern.match(text)
        if not match:
            return None
        return self.transform(match, ctx)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

DRIVER = r"(?:this\.)?(?:getDriver\(\)|driver)"

_ACCESSOR_RE = re.compile(r"^(?:this\.)?([A-Za-z_]\w*)$")
_FIND_ELEMENT_RE = re.compile(rf"^{DRIVER}\.findElement\(\s*By\.(\w+)\((.*)\)\s*\)$")
_BY_RE = re.compile(r"^By\.(\w+)\((.*)\)$")
_NEW_ELEMENT_RE = re.compile(
    r"^new\s+(?:QAFExtendedWebElement|QAFWebElement|QAFWebComponent)\((.*)\)$"
)
_DURATION_RE = re.compile(r"^(\d+)[lL]?$")
LITERAL_RE = re.compile(r'^(?:"(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?[lLdDfF]?|true|false|null)$')

KEY_NAMES = {
    "ENTER": "Enter",
    "RETURN": "Enter",
    "TAB": "Tab",
    "ESCAPE": "Escape",
    "BACK_SPACE": "Backspace",
    "DELETE": "Delete",
    "SPACE": "Space",
    "ARROW_DOWN": "ArrowDown",
    "ARROW_UP": "ArrowUp",
}


def convert_duration(text: str) -> str:
    """
    Literal durations above 1000 are divided by 1000; anything else
    passes through unchanged.
    """
    text = text.strip()
    match = _DURATION_RE.match(text)
    if not match:
        return text
    value = int(match.group(1))
    if value <= 1000:
        return str(value)
    seconds = value / 1000
    return str(int(seconds)) if seconds.is_integer() else str(seconds)


_TRAILING_CONCAT_RE = re.compile(r'^("(?:[^"\\]|\\.)*")\s*\+\s*([A-Za-z_]\w*)$')


def _locator_argument(argument: str, ctx: ConversionContext) -> str | None:
    """Content of a locator string; a trailing `+ name` in scope is kept for the emitter."""
    value = unquote_java(argument)
    if value is not None:
        return value
    m = _TRAILING_CONCAT_RE.match(argument.strip())
    if m is None or m.group(2) not in ctx.scope_names:
        return None
    return f'{unquote_java(m.group(1))}" + {m.group(2)}'


def _by_locator(method: str, argument: str, ctx: ConversionContext) -> str | None:
    value = _locator_argument(argument, ctx)
    if value is None:
        return None
    descriptor = descriptor_from_by(method, value)
    return f"{ctx.page_ref}.{emit_locator(descriptor, ctx.scope_names)}"


def resolve_element(expr: str, ctx: ConversionContext) -> str | None:
    """Playwright expression for a Java element reference, or None."""
    expr = expr.strip()
    if m := _ACCESSOR_RE.match(expr):
        if m.group(1) in ctx.element_accessors and ctx.self_ref:
            return f"(await {ctx.self_ref}.{m.group(1)}())"
        return None
    if m := _FIND_ELEMENT_RE.match(expr):
        return _by_locator(m.group(1), m.group(2), ctx)
    if m := _BY_RE.match(expr):
        return _by_locator(m.group(1), m.group(2), ctx)
    if m := _NEW_ELEMENT_RE.match(expr):
        args = split_args(m.group(1))
        value = _locator_argument(args[0], ctx) if args else None
        if value is None:
            return None
        return f"{ctx.page_ref}.{emit_locator(parse_locator(value), ctx.scope_names)}"
    return None


def _element_name(expr: str) -> str:
    m = _ACCESSOR_RE.match(expr.strip())
    return m.group(1) if m else expr.strip()


def _call_parts(text: str) -> tuple[str, str] | None:
    """Split `callee(args);` into (callee, args) when the parens span to the end."""
    if not text.endswith(";"):
        return None
    body = text[:-1].rstrip()
    masked = mask_strings(body)
    if not masked.endswith(")"):
        return None
    depth = 0
    for i in range(len(masked) - 1, -1, -1):
        if masked[i] == ")":
            depth += 1
        elif masked[i] == "(":
            depth -= 1
            if depth == 0:
                return body[:i].strip(), body[i + 1:-1]
    return None


def _expect(soft: bool) -> str:
    return "expect.soft" if soft else "expect"


# Element reads inside larger expressions
_READ_ACTIONS = {
    "getText": "innerText",
    "isDisplayed": "isVisible",
    "isVisible": "isVisible",
    "isPresent": "isVisible",
    "isEnabled": "isEnabled",
    "isSelected": "isChecked",
    "getAttribute": "getAttribute",
}
_READ_RE = re.compile(
    r"(?<![\w.])(?P<target>(?:this\.)?[A-Za-z_]\w*|"
    rf"{DRIVER}\.findElement\(\s*By\.\w+\(\"(?:[^\"\\]|\\.)*\"\)\s*\))"
    rf"\.(?P<action>{'|'.join(_READ_ACTIONS)})\((?P<args>[^()]*)\)"
)
_TITLE_RE = re.compile(rf"{DRIVER}\.getTitle\(\)")
_URL_RE = re.compile(rf"{DRIVER}\.getCurrentUrl\(\)")
_EQUALS_RE = re.compile(r"(\w+(?:\(\))?|\"(?:[^\"\\]|\\.)*\")\.equals\(([^()]*)\)")


def translate_expression(expr: str, ctx: ConversionContext) -> str:
    """Rewrite element reads and driver queries inside an expression."""

    def read(match: re.Match) -> str:
        element = resolve_element(match.group("target"), ctx)
        if element is None:
            return match.group(0)
        return f"await {element}.{_READ_ACTIONS[match.group('action')]}({match.group('args')})"

    expr = _READ_RE.sub(read, expr)
    expr = _TITLE_RE.sub(f"await {ctx.page_ref}.title()", expr)
    expr = _URL_RE.sub(f"{ctx.page_ref}.url()", expr)
    expr = _EQUALS_RE.sub(r"\1 === \2", expr)
    return expr


def _declaration_prefix(raw: str | None, ctx: ConversionContext) -> str:
    """`return `, `String x = ` or `x = ` as its TypeScript equivalent."""
    if not raw:
        return ""
    raw = raw.strip()
    if raw == "return":
        return "return "
    if m := re.match(rf"^(?:final\s+)?({TYPE})\s+(\w+)\s*=$", raw):
        ctx.locals[m.group(2)] = m.group(1)
        return f"const {m.group(2)} = "
    return raw.rstrip("= ").strip() + " = "


_PREFIX = rf"(?P<prefix>return\s+|(?:final\s+)?{TYPE}\s+\w+\s*=\s*|[\w.]+\s*=\s*)?"


# ---------------------------------------------------------------------------
# (a) waits
# ---------------------------------------------------------------------------

_WAIT_STATES = {
    "waitForVisible": "visible",
    "waitForNotVisible": "hidden",
    "waitForPresent": "attached",
    "waitForNotPresent": "detached",
}
_WAIT_EXPECT = {
    "waitForEnabled": "toBeEnabled",
    "waitForDisabled": "toBeDisabled",
}


def _wait_line(element: str, state_or_matcher: str, timeout: str | None) -> str:
    if state_or_matcher.startswith("to"):
        options = f"{{ timeout: {timeout} }}" if timeout else ""
        return f"await expect({element}).{state_or_matcher}({options});"
    options = f"state: '{state_or_matcher}'"
    if timeout:
        options += f", timeout: {timeout}"
    return f"await {element}.waitFor({{ {options} }});"


def _element_wait(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    element = resolve_element(m.group("target"), ctx)
    if element is None:
        return None
    action = m.group("action")
    timeout = convert_duration(m.group("timeout")) if m.group("timeout").strip() else None
    ctx.record("wait", _element_name(m.group("target")), timeout)
    return [_wait_line(element, _WAIT_STATES.get(action) or _WAIT_EXPECT[action], timeout)]


_CONDITIONS = {
    "visibilityOf": "visible",
    "visibilityOfElementLocated": "visible",
    "elementToBeClickable": "visible",
    "invisibilityOf": "hidden",
    "invisibilityOfElementLocated": "hidden",
    "presenceOfElementLocated": "attached",
}


def _driver_wait(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    state = _CONDITIONS.get(m.group("cond"))
    element = resolve_element(m.group("arg"), ctx)
    if state is None or element is None:
        return None
    timeout = convert_duration(m.group("timeout"))
    ctx.record("wait", _element_name(m.group("arg")), timeout)
    return [_wait_line(element, state, timeout)]


# ---------------------------------------------------------------------------
# (b) element actions
# ---------------------------------------------------------------------------

ELEMENT_ACTIONS = {
    "click": "click",
    "sendKeys": "fill",
    "clear": "clear",
    "isDisplayed": "isVisible",
    "isVisible": "isVisible",
    "isPresent": "isVisible",
    "isEnabled": "isEnabled",
    "isSelected": "isChecked",
    "isChecked": "isChecked",
    "getText": "innerText",
    "getAttribute": "getAttribute",
    "submit": "press",
}


def _element_action(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    element = resolve_element(m.group("target"), ctx)
    if element is None:
        return None
    action = m.group("action")
    method = ELEMENT_ACTIONS[action]
    args = [translate_expression(a, ctx) for a in split_args(m.group("args"))]

    if action == "sendKeys" and len(args) == 1 and args[0].startswith("Keys."):
        key = args[0].split(".", 1)[1]
        method, args = "press", [f"'{KEY_NAMES.get(key, key.title())}'"]
    elif action == "submit":
        args = ["'Enter'"]

    prefix = _declaration_prefix(m.group("prefix"), ctx)
    ctx.record(method, _element_name(m.group("target")), ", ".join(args) or None)
    return [f"{prefix}await {element}.{method}({', '.join(args)});"]


# ---------------------------------------------------------------------------
# (c) fixed-duration sleeps
# ---------------------------------------------------------------------------


def _sleep(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    duration = convert_duration(m.group("duration"))
    ctx.record("sleep", None, duration)
    return [f"await {ctx.page_ref}.waitForTimeout({duration});"]


# ---------------------------------------------------------------------------
# (d) assertions
# ---------------------------------------------------------------------------

_VISIBILITY_READ_RE = re.compile(r"^(?P<target>.+?)\.(?:isDisplayed|isVisible|isPresent)\(\)$")


def _assertion(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    name = m.group("name")
    soft = name.startswith("verify")
    kind = name[len("verify"):] if soft else name[len("assert"):]
    args = split_args(m.group("args"))
    expect = _expect(soft)

    if kind in ("Equals", "NotEquals"):
        if len(args) < 2:
            return None
        actual, expected = (translate_expression(a, ctx) for a in args[:2])
        message = f", {args[2]}" if len(args) > 2 else ""
        negate = ".not" if kind == "NotEquals" else ""
        ctx.record("assert", None, expected)
        return [f"{expect}({actual}{message}){negate}.toBe({expected});"]

    if kind in ("True", "False", "Null", "NotNull"):
        if not args:
            return None
        condition = args[0]
        message = f", {args[1]}" if len(args) > 1 else ""
        visible = _VISIBILITY_READ_RE.match(condition)
        if visible and kind in ("True", "False"):
            element = resolve_element(visible.group("target"), ctx)
            if element is not None:
                matcher = "toBeVisible" if kind == "True" else "toBeHidden"
                ctx.record("assert", _element_name(visible.group("target")), matcher)
                return [f"await {expect}({element}{message}).{matcher}();"]
        matcher = {
            "True": "toBeTruthy()",
            "False": "toBeFalsy()",
            "Null": "toBeNull()",
            "NotNull": "not.toBeNull()",
        }[kind]
        ctx.record("assert", None, matcher)
        return [f"{expect}({translate_expression(condition, ctx)}{message}).{matcher};"]

    return None


_ELEMENT_ASSERTIONS = {
    "Visible": "toBeVisible",
    "NotVisible": "toBeHidden",
    "Present": "toBeAttached",
    "NotPresent": "not.toBeAttached",
    "Text": "toHaveText",
    "Enabled": "toBeEnabled",
    "Disabled": "toBeDisabled",
}


def _element_assertion(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    element = resolve_element(m.group("target"), ctx)
    if element is None:
        return None
    name = m.group("name")
    soft = name.startswith("verify")
    matcher = _ELEMENT_ASSERTIONS[name[len("verify"):] if soft else name[len("assert"):]]
    args = [translate_expression(a, ctx) for a in split_args(m.group("args"))]
    if matcher == "toHaveText":
        args = args[:1]
    else:
        args = []
    ctx.record("assert", _element_name(m.group("target")), matcher)
    return [f"await {_expect(soft)}({element}).{matcher}({', '.join(args)});"]


# ---------------------------------------------------------------------------
# (e) passthrough
# ---------------------------------------------------------------------------


def _log(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    args = split_args(m.group("args"))
    message = translate_expression(args[0], ctx) if args else ""
    return [f"console.log({message});"]


def _navigate(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    url = translate_expression(m.group("url"), ctx)
    ctx.record("navigate", None, url)
    return [f"await {ctx.page_ref}.goto({url});"]


def _history(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    method = {"refresh": "reload", "back": "goBack", "forward": "goForward"}[m.group("op")]
    ctx.record(method)
    return [f"await {ctx.page_ref}.{method}();"]


def _is_page_class(name: str, ctx: ConversionContext) -> bool:
    return ctx.project is not None and ctx.project.roles(name).is_page_object


def _new_page_object(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    ctor = m.group("ctor")
    if not _is_page_class(ctor, ctx):
        return None
    ctx.import_class(ctor)
    var = m.group("var")
    ctx.locals[var] = ctor
    keyword = "const " if m.group("type") else ""
    return [f"{keyword}{var} = new {ctor}({ctx.page_ref});"]


def _chained_page_call(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    ctor = m.group("ctor")
    if not _is_page_class(ctor, ctx):
        return None
    ctx.import_class(ctor)
    parts = _call_parts(m.group("call") + ";")
    if parts is None:
        return None
    args = ", ".join(translate_expression(a, ctx) for a in split_args(parts[1]))
    return [f"await new {ctor}({ctx.page_ref}).{parts[0]}({args});"]


def _throw(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    name = m.group("type")
    args = ", ".join(translate_expression(a, ctx) for a in split_args(m.group("args")))
    if ctx.project is not None and ctx.project.roles(name).is_exception:
        ctx.import_class(name)
        return [f"throw new {name}({args});"]
    return [f"throw new Error({args});"]


def _return(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    expr = (m.group("expr") or "").strip()
    if not expr:
        return ["return;"]
    if expr == "this" and ctx.self_ref:
        return ["return this;"]
    if LITERAL_RE.match(expr) or expr in ctx.scope_names:
        return [f"return {expr};"]
    if new := re.match(r"^new\s+(\w+)\((.*)\)$", expr):
        if _is_page_class(new.group(1), ctx):
            ctx.import_class(new.group(1))
            return [f"return new {new.group(1)}({ctx.page_ref});"]
    return None


def _literal_declaration(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    value = m.group("value").strip()
    if not LITERAL_RE.match(value):
        return None
    ctx.locals[m.group("var")] = m.group("type")
    return [f"const {m.group('var')} = {re.sub(r'(?<=[0-9])[lLdDfF]$', '', value)};"]


def _generic_call(m: re.Match, ctx: ConversionContext) -> list[str] | None:
    parts = _call_parts(m.group(0))
    if parts is None:
        return None
    callee, raw_args = parts
    masked = mask_strings(raw_args)
    if masked.count("{") != masked.count("}") or "->" in masked:
        return None
    if not re.match(r"^(?:this\.)?[A-Za-z_][\w.]*$", callee):
        return None

    receiver, _, name = callee.rpartition(".")
    if name in KEYWORDS or receiver in KEYWORDS or name == "super":
        return None
    args = [translate_expression(a, ctx) for a in split_args(raw_args)]

    if receiver in ("", "this"):
        if name in ctx.functions:
            return [f"await {name}({', '.join([ctx.page_ref, *args])});"]
        if name in ctx.static_methods and ctx.class_name:
            return [f"await {ctx.class_name}.{name}({', '.join([ctx.page_ref, *args])});"]
        inherited = any(name in info.method_names() for info in ctx.ancestors)
        if (name in ctx.method_names or inherited) and ctx.self_ref:
            return [f"await {ctx.self_ref}.{name}({', '.join(args)});"]
        return None

    if re.match(rf"^{DRIVER}$", receiver) or receiver.startswith(("driver.", "getDriver()")):
        return None

    project_class = ctx.project.get(receiver) if ctx.project is not None else None
    if project_class is not None and receiver == project_class.name:
        ctx.import_class(project_class.name)
        if any(meth.name == name and meth.is_static for meth in project_class.methods):
            args = [ctx.page_ref, *args]

    ctx.record("call", receiver, name)
    return [f"await {receiver}.{name}({', '.join(args)});"]


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

RULES: tuple[Rule, ...] = (
    Rule(
        "element_wait",
        RuleFamily.WAIT,
        re.compile(
            r"^(?P<target>.+?)\.(?P<action>waitForVisible|waitForNotVisible|waitForPresent"
            r"|waitForNotPresent|waitForEnabled|waitForDisabled)\((?P<timeout>[^()]*)\)\s*;$"
        ),
        _element_wait,
    ),
    Rule(
        "driver_wait",
        RuleFamily.WAIT,
        re.compile(
            r"^new\s+WebDriverWait\(\s*[\w.()]+\s*,\s*(?P<timeout>[^,()]+?)\s*(?:,[^()]*)?\)"
            r"\s*\.until\(\s*ExpectedConditions\.(?P<cond>\w+)\((?P<arg>.*)\)\s*\)\s*;$"
        ),
        _driver_wait,
    ),
    Rule(
        "element_action",
        RuleFamily.ACTION,
        re.compile(
            rf"^{_PREFIX}(?P<target>.+?)\.(?P<action>{'|'.join(ELEMENT_ACTIONS)})"
            r"\((?P<args>.*)\)\s*;$"
        ),
        _element_action,
    ),
    Rule(
        "sleep",
        RuleFamily.SLEEP,
        re.compile(
            r"^(?:(?:Thread|\w*Utils?|TimeUnit\.\w+)\.sleep|(?:QAFTestBase\.)?pause|sleep)"
            r"\(\s*(?P<duration>[^()]+?)\s*\)\s*;$"
        ),
        _sleep,
    ),
    Rule(
        "assertion",
        RuleFamily.ASSERTION,
        re.compile(
            r"^(?:(?:Assert|Assertions|Validator|SoftAssert|softAssert)\.)?"
            r"(?P<name>(?:assert|verify)(?:Equals|NotEquals|True|False|Null|NotNull))"
            r"\((?P<args>.*)\)\s*;$"
        ),
        _assertion,
    ),
    Rule(
        "element_assertion",
        RuleFamily.ASSERTION,
        re.compile(
            r"^(?P<target>.+?)\.(?P<name>(?:assert|verify)"
            r"(?:Visible|NotVisible|Present|NotPresent|Text|Enabled|Disabled))"
            r"\((?P<args>.*)\)\s*;$"
        ),
        _element_assertion,
    ),
    Rule(
        "log",
        RuleFamily.PASSTHROUGH,
        re.compile(
            r"^(?:System\.(?:out|err)\.print(?:ln)?|Reporter\.log"
            r"|(?:logger|log|LOGGER|LOG)\.(?:info|debug|warn|error|trace))\((?P<args>.*)\)\s*;$"
        ),
        _log,
    ),
    Rule(
        "navigate",
        RuleFamily.PASSTHROUGH,
        re.compile(rf"^{DRIVER}\.(?:get|navigate\(\)\.to)\((?P<url>.+)\)\s*;$"),
        _navigate,
    ),
    Rule(
        "history",
        RuleFamily.PASSTHROUGH,
        re.compile(rf"^{DRIVER}\.navigate\(\)\.(?P<op>refresh|back|forward)\(\)\s*;$"),
        _history,
    ),
    Rule(
        "new_page_object",
        RuleFamily.PASSTHROUGH,
        re.compile(
            r"^(?:final\s+)?(?:(?P<type>\w+)\s+)?(?P<var>\w+)\s*=\s*new\s+(?P<ctor>\w+)"
            r"\((?P<args>[^()]*)\)\s*;$"
        ),
        _new_page_object,
    ),
    Rule(
        "chained_page_call",
        RuleFamily.PASSTHROUGH,
        re.compile(r"^new\s+(?P<ctor>\w+)\((?P<args>[^()]*)\)\.(?P<call>\w+\(.*\))\s*;$"),
        _chained_page_call,
    ),
    Rule(
        "throw",
        RuleFamily.PASSTHROUGH,
        re.compile(r"^throw\s+new\s+(?P<type>\w+)\((?P<args>.*)\)\s*;$"),
        _throw,
    ),
    Rule(
        "return",
        RuleFamily.PASSTHROUGH,
        re.compile(r"^return(?:\s+(?P<expr>.+?))?\s*;$"),
        _return,
    ),
    Rule(
        "literal_declaration",
        RuleFamily.PASSTHROUGH,
        re.compile(r"^(?:final\s+)?(?P<type>[\w.]+)\s+(?P<var>\w+)\s*=\s*(?P<value>.+?)\s*;$"),
        _literal_declaration,
    ),
    Rule(
        "generic_call",
        RuleFamily.PASSTHROUGH,
        re.compile(r"^(?:this\.)?[A-Za-z_][\w.]*\(.*\)\s*;$"),
        _generic_call,
    ),
)


def is_single_statement(text: str) -> bool:
    """False when a top-level `;` is followed by more code (`a(); b();`)."""
    masked = mask_strings(text)
    depth = 0
    for i, ch in enumerate(masked):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == ";" and depth == 0 and masked[i + 1:].strip():
            return False
    return True


def apply_rules(
    text: str,
    ctx: ConversionContext,
    rules: tuple[Rule, ...] = RULES,
) -> tuple[Rule, list[str]] | None:
    """First rule that matches and accepts, with its output lines."""
    for rule in rules:
        lines = rule.apply(text, ctx)
        if lines is not None:
            return rule, lines
    return None


def translate_statement(
    statement: Statement,
    ctx: ConversionContext,
    rules: tuple[Rule, ...] = RULES,
) -> list[str]:
    """
    Translate one statement, applying the failure policy when no rule fires.

    Returns the lines to emit; an empty list means the statement was dropped.
    """
    text = statement.text.strip()
    result = apply_rules(text, ctx, rules) if is_single_statement(text) else None
    if result is not None:
        rule, lines = result
        logger.debug("statement_translated", line=statement.line, rule=rule.name)
        return lines

    if ctx.in_method:
        ctx.diagnostics.append(Diagnostic(statement.line, "emitted as TODO", text))
        return [f"// TODO: {text}"]

    ctx.diagnostics.append(Diagnostic(statement.line, "no pattern match", text))
    return []
