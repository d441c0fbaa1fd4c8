"""Tests for locator descriptor parsing and Playwright emission."""

import pytest

from pomshift.core.locator import (
    LocatorDescriptor,
    LocatorType,
    descriptor_from_by,
    emit_locator,
    parse_locator,
    to_literal,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseLocator:
    """Ordered fallback tiers of parse_locator."""

    def test_plain_token(self):
        descriptor = parse_locator("id=submitBtn")
        assert descriptor.type is LocatorType.ID
        assert descriptor.value == "submitBtn"
        assert descriptor.description is None

    def test_plain_token_splits_at_first_equals_only(self):
        descriptor = parse_locator("xpath=//input[@name='q']")
        assert descriptor.type is LocatorType.XPATH
        assert descriptor.value == "//input[@name='q']"

    def test_type_token_is_case_insensitive(self):
        assert parse_locator("XPATH=//a").type is LocatorType.XPATH
        assert parse_locator("cssSelector=.btn").type is LocatorType.CSS
        assert parse_locator("link=Home").type is LocatorType.LINK_TEXT

    def test_structured_locator_with_desc(self):
        descriptor = parse_locator('{"locator":"xpath=//button[@id=\'ok\']","desc":"OK button"}')
        assert descriptor.type is LocatorType.XPATH
        assert descriptor.value == "//button[@id='ok']"
        assert descriptor.description == "OK button"

    def test_structured_value_keeps_later_equals(self):
        descriptor = parse_locator('{"locator":"css=input[type=text]"}')
        assert descriptor.type is LocatorType.CSS
        assert descriptor.value == "input[type=text]"

    def test_structured_escaped_quotes(self):
        descriptor = parse_locator('{\\"locator\\":\\"id=user\\"}')
        assert descriptor.type is LocatorType.ID
        assert descriptor.value == "user"

    def test_structured_doubled_quotes(self):
        descriptor = parse_locator('{""locator"":""name=q""}')
        assert descriptor.type is LocatorType.NAME
        assert descriptor.value == "q"

    def test_structured_locator_list_uses_first_string(self):
        descriptor = parse_locator('{"locator":["id=a","css=.b"]}')
        assert descriptor.type is LocatorType.ID
        assert descriptor.value == "a"

    def test_key_scan_priority(self):
        descriptor = parse_locator('{"css":".btn","id":"save","desc":"Save"}')
        assert descriptor.type is LocatorType.ID
        assert descriptor.value == "save"
        assert descriptor.description == "Save"

    def test_regex_fallback_on_broken_json(self):
        descriptor = parse_locator('{"locator":"id=broken","desc":"Broken" ')
        assert descriptor.type is LocatorType.ID
        assert descriptor.value == "broken"
        assert descriptor.description == "Broken"

    @pytest.mark.parametrize("raw", ["login.button", "", "{not json", "bogus=thing"])
    def test_unknown_keeps_original(self, raw):
        descriptor = parse_locator(raw)
        assert descriptor.type is LocatorType.UNKNOWN
        assert descriptor.value == raw

    def test_descriptor_requires_value(self):
        with pytest.raises(ValueError):
            LocatorDescriptor(type=LocatorType.ID, value="")

    def test_unknown_may_be_empty(self):
        assert LocatorDescriptor.unknown("").value == ""

    def test_descriptor_from_by(self):
        assert descriptor_from_by("cssSelector", ".x").type is LocatorType.CSS
        assert descriptor_from_by("className", "x").type is LocatorType.CLASS_NAME
        assert descriptor_from_by("LINK_TEXT", "Home").type is LocatorType.LINK_TEXT
        assert descriptor_from_by("somethingElse", "x").type is LocatorType.UNKNOWN


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------


class TestEmitLocator:
    """Descriptor to Playwright call expressions."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("id=submitBtn", "locator('#submitBtn')"),
            ("xpath=//button", "locator(`xpath=//button`)"),
            ("css=.btn-primary", "locator('.btn-primary')"),
            ("name=email", "locator('[name=\"email\"]')"),
            ("linkText=Sign in", "getByText('Sign in')"),
            ("partialLinkText=Sign", "getByText('Sign', { exact: false })"),
            ("className=active", "locator('.active')"),
            ("tagName=h1", "locator('h1')"),
            ("text=Welcome", "getByText('Welcome')"),
            ("role=button", "getByRole('button')"),
            ("role=button:Submit", "getByRole('button', { name: 'Submit' })"),
            ("label=Email", "getByLabel('Email')"),
            ("placeholder=Search", "getByPlaceholder('Search')"),
            ("alt=Logo", "getByAltText('Logo')"),
            ("title=Close", "getByTitle('Close')"),
            ("login.button", "locator('login.button')"),
        ],
    )
    def test_mapping(self, raw, expected):
        assert emit_locator(parse_locator(raw)) == expected

    def test_xpath_with_quotes_stays_intact(self):
        descriptor = parse_locator('{"locator":"xpath=//button[@id=\'ok\']","desc":"OK button"}')
        assert emit_locator(descriptor) == "locator(`xpath=//button[@id='ok']`)"

    def test_single_quote_switches_to_template(self):
        assert emit_locator(parse_locator("text=Don't")) == "getByText(`Don't`)"

    def test_backtick_and_backslash_escaped(self):
        assert emit_locator(parse_locator("xpath=//a[.='`x`']")) == "locator(`xpath=//a[.='\\`x\\`']`)"
        assert emit_locator(parse_locator("css=a\\b")) == "locator('a\\\\b')"

    def test_template_escapes_interpolation_marker(self):
        assert to_literal("${x}", template=True) == "`\\${x}`"

    def test_dynamic_parameter_substitution(self):
        descriptor = descriptor_from_by("xpath", "//a[text()='\" + itemName + \"']")
        assert emit_locator(descriptor, ["itemName"]) == "locator(`xpath=//a[text()='${itemName}']`)"

    def test_trailing_concatenation(self):
        descriptor = descriptor_from_by("id", 'row-" + index')
        assert emit_locator(descriptor, ["index"]) == "locator(`#row-${index}`)"

    def test_name_value_quotes_are_escaped(self):
        assert emit_locator(parse_locator('name=a"b')) == r"""locator('[name="a\\"b"]')"""

    def test_dynamic_name_value(self):
        descriptor = descriptor_from_by("name", 'user-" + id + "')
        assert emit_locator(descriptor, ["id"]) == 'locator(`[name="user-${id}"]`)'

    def test_unknown_names_are_not_substituted(self):
        descriptor = descriptor_from_by("id", 'row-" + other + "')
        assert "${" not in emit_locator(descriptor, ["index"])

    @pytest.mark.parametrize(
        "descriptor",
        [
            LocatorDescriptor.unknown(""),
            LocatorDescriptor(type=LocatorType.CSS, value="'"),
            LocatorDescriptor(type=LocatorType.XPATH, value="`"),
            LocatorDescriptor(type=LocatorType.ROLE, value=":"),
        ],
    )
    def test_output_is_never_empty_and_complete(self, descriptor):
        out = emit_locator(descriptor)
        assert out
        assert out.endswith(")")
        assert out.count("(") == out.count(")")
