"""Tests for the line-oriented source reader."""

from pomshift.core.source import (
    SourceDocument,
    iter_statements,
    mask_strings,
    split_args,
    strip_line_comment,
    unquote_java,
)


def _texts(source: str) -> list[str]:
    return [st.text for st in iter_statements(SourceDocument.from_text(source))]


class TestSourceDocument:

    def test_numbered_echo_is_one_based(self):
        doc = SourceDocument.from_text("class A {\n}\n")
        assert doc.numbered() == "    1: class A {\n    2: }"

    def test_read_from_disk(self, tmp_path):
        path = tmp_path / "A.java"
        path.write_text("class A {}\n", encoding="utf-8")
        doc = SourceDocument.read(path)
        assert doc.lines == ("class A {}",)
        assert doc.path == path


class TestStatements:

    def test_multi_line_call_is_collapsed(self):
        source = 'foo(\n    "a",\n    "b");\nbar();\n'
        statements = list(iter_statements(SourceDocument.from_text(source)))
        assert statements[0].text == 'foo( "a", "b");'
        assert statements[0].line == 1
        assert statements[0].end_line == 3
        assert statements[1].text == "bar();"
        assert statements[1].line == 4

    def test_blank_lines_skipped_and_comments_separate(self):
        assert _texts("\n// note\n\nx();  // trailing\n") == ["// note", "x();"]

    def test_block_comment_joined(self):
        texts = _texts("/**\n * Docs\n */\nvoid m() {\n}\n")
        assert texts[0] == "/** * Docs */"
        assert texts[1] == "void m() {"

    def test_annotation_is_its_own_statement(self):
        assert _texts('@FindBy(locator = "id=a")\nprivate QAFWebElement a;\n') == [
            '@FindBy(locator = "id=a")',
            "private QAFWebElement a;",
        ]

    def test_braces_inside_strings_are_ignored(self):
        statement = next(iter_statements(SourceDocument.from_text('log("{ not a block");')))
        assert statement.opens == 0
        assert statement.closes == 0

    def test_allman_brace_joins_declaration(self):
        assert _texts("public class A\n{\n}\n") == ["public class A {", "}"]


class TestHelpers:

    def test_mask_strings_preserves_offsets(self):
        text = 'a("x{y}", \'z\')'
        masked = mask_strings(text)
        assert len(masked) == len(text)
        assert "{" not in masked
        assert masked.startswith('a("')

    def test_mask_handles_escaped_quote(self):
        assert mask_strings('"a\\"b" + c') == '"    " + c'

    def test_strip_line_comment_ignores_urls_in_strings(self):
        assert strip_line_comment('get("http://x"); // go') == 'get("http://x");'

    def test_split_args_respects_nesting(self):
        assert split_args('a, f(b, c), "d,e", {1, 2}') == ["a", "f(b, c)", '"d,e"', "{1, 2}"]
        assert split_args("  ") == []

    def test_unquote_java(self):
        assert unquote_java('"a\\"b"') == 'a"b'
        assert unquote_java("name") is None
