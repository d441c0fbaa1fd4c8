"""Tests for the statement translator rule table."""

from pathlib import Path

import pytest

from pomshift.core.classifier import build_project_context
from pomshift.core.source import SourceDocument, Statement
from pomshift.core.translator import (
    RULES,
    ConversionContext,
    RuleFamily,
    apply_rules,
    convert_duration,
    translate_expression,
    translate_statement,
)

from tests.conftest import LOGIN_FAILED_EXCEPTION, LOGIN_PAGE


@pytest.fixture
def ctx():
    context = ConversionContext(
        class_name="LoginPage",
        element_accessors={"loginButton", "usernameInput", "banner"},
        method_names={"login", "logout"},
        static_methods={"create"},
    )
    context.enter_method(["user", "itemName"], page_ref="this.page", self_ref="this")
    return context


@pytest.fixture
def step_ctx():
    context = ConversionContext()
    context.enter_method(["user"], page_ref="page", self_ref=None)
    return context


def _one(text: str, ctx: ConversionContext) -> str:
    lines = translate_statement(Statement(text=text, line=7, end_line=7), ctx)
    assert len(lines) == 1
    return lines[0]


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


class TestRuleTable:

    def test_families_are_in_precedence_order(self):
        order = list(RuleFamily)
        positions = [order.index(rule.family) for rule in RULES]
        assert positions == sorted(positions)

    def test_rule_names_are_unique(self):
        names = [rule.name for rule in RULES]
        assert len(names) == len(set(names))

    def test_first_match_wins(self, ctx):
        rule, lines = apply_rules("loginButton.waitForVisible(3000);", ctx)
        assert rule.family is RuleFamily.WAIT
        assert lines == ["await (await this.loginButton()).waitFor({ state: 'visible', timeout: 3 });"]

    def test_declining_rule_lets_later_rules_try(self, ctx):
        rule, _ = apply_rules("helper.click();", ctx)
        assert rule.name == "generic_call"


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------


class TestDuration:

    @pytest.mark.parametrize(
        "raw,expected",
        [("2000", "2"), ("1000", "1000"), ("500", "500"), ("1500", "1.5"), ("3000L", "3"), ("TIMEOUT", "TIMEOUT")],
    )
    def test_threshold_rule(self, raw, expected):
        assert convert_duration(raw) == expected


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------


class TestWaits:

    def test_wait_without_timeout(self, ctx):
        assert _one("banner.waitForNotVisible();", ctx) == "await (await this.banner()).waitFor({ state: 'hidden' });"

    def test_wait_enabled_uses_expect(self, ctx):
        assert _one("loginButton.waitForEnabled(500);", ctx) == (
            "await expect((await this.loginButton())).toBeEnabled({ timeout: 500 });"
        )

    def test_webdriver_wait(self, ctx):
        text = "new WebDriverWait(driver, 10).until(ExpectedConditions.visibilityOf(loginButton));"
        assert _one(text, ctx) == "await (await this.loginButton()).waitFor({ state: 'visible', timeout: 10 });"

    def test_webdriver_wait_on_by_locator(self, ctx):
        text = 'new WebDriverWait(driver, 5000).until(ExpectedConditions.presenceOfElementLocated(By.id("x")));'
        assert _one(text, ctx) == "await this.page.locator('#x').waitFor({ state: 'attached', timeout: 5 });"


class TestActions:

    def test_click_on_accessor(self, ctx):
        assert _one("loginButton.click();", ctx) == "await (await this.loginButton()).click();"

    def test_this_prefixed_accessor(self, ctx):
        assert _one("this.loginButton.click();", ctx) == "await (await this.loginButton()).click();"

    def test_send_keys_becomes_fill(self, ctx):
        assert _one("usernameInput.sendKeys(user);", ctx) == "await (await this.usernameInput()).fill(user);"

    def test_send_keys_special_key_becomes_press(self, ctx):
        assert _one("usernameInput.sendKeys(Keys.ENTER);", ctx) == "await (await this.usernameInput()).press('Enter');"

    def test_return_prefix(self, ctx):
        assert _one("return banner.getText();", ctx) == "return await (await this.banner()).innerText();"

    def test_declaration_prefix_becomes_const(self, ctx):
        assert _one("boolean shown = banner.isDisplayed();", ctx) == (
            "const shown = await (await this.banner()).isVisible();"
        )
        assert "shown" in ctx.locals

    def test_find_element_with_dynamic_xpath(self, ctx):
        text = "driver.findElement(By.xpath(\"//a[text()='\" + itemName + \"']\")).click();"
        assert _one(text, ctx) == "await this.page.locator(`xpath=//a[text()='${itemName}']`).click();"

    def test_find_element_with_trailing_parameter(self, ctx):
        text = 'driver.findElement(By.id("row-" + itemName)).click();'
        assert _one(text, ctx) == "await this.page.locator(`#row-${itemName}`).click();"

    def test_trailing_name_out_of_scope_is_not_resolved(self, ctx):
        text = 'driver.findElement(By.id("row-" + other)).click();'
        assert _one(text, ctx) == f"// TODO: {text}"

    def test_new_element(self, ctx):
        assert _one('new QAFExtendedWebElement("css=.save").click();', ctx) == (
            "await this.page.locator('.save').click();"
        )

    def test_actions_are_recorded(self, ctx):
        _one("usernameInput.sendKeys(user);", ctx)
        _one("loginButton.click();", ctx)
        assert [(a.action, a.target) for a in ctx.actions] == [
            ("fill", "usernameInput"),
            ("click", "loginButton"),
        ]

    def test_accessors_need_an_instance(self, step_ctx):
        step_ctx.element_accessors = {"loginButton"}
        assert _one("loginButton.click();", step_ctx) == "await loginButton.click();"


class TestSleeps:

    @pytest.mark.parametrize(
        "text", ["Thread.sleep(2000);", "QAFTestBase.pause(2000);", "pause(2000);", "TimeUnit.SECONDS.sleep(2000);"]
    )
    def test_sleep_forms(self, ctx, text):
        assert _one(text, ctx) == "await this.page.waitForTimeout(2);"

    def test_sleep_in_step_uses_page(self, step_ctx):
        assert _one("Thread.sleep(500);", step_ctx) == "await page.waitForTimeout(500);"


class TestAssertions:

    def test_assert_equals_keeps_actual_expected_order(self, ctx):
        assert _one('Assert.assertEquals(banner.getText(), "Welcome");', ctx) == (
            'expect(await (await this.banner()).innerText()).toBe("Welcome");'
        )

    def test_assert_not_equals_with_message(self, ctx):
        assert _one('assertNotEquals(count, 0, "must change");', ctx) == (
            'expect(count, "must change").not.toBe(0);'
        )

    def test_assert_true_on_visibility(self, ctx):
        assert _one("assertTrue(banner.isDisplayed());", ctx) == "await expect((await this.banner())).toBeVisible();"
        assert _one("assertFalse(banner.isDisplayed());", ctx) == "await expect((await this.banner())).toBeHidden();"

    def test_assert_true_generic(self, ctx):
        assert _one("assertTrue(done);", ctx) == "expect(done).toBeTruthy();"

    def test_null_checks(self, ctx):
        assert _one("assertNull(error);", ctx) == "expect(error).toBeNull();"
        assert _one("assertNotNull(error);", ctx) == "expect(error).not.toBeNull();"

    def test_verify_is_soft(self, ctx):
        assert _one("Validator.verifyTrue(done);", ctx) == "expect.soft(done).toBeTruthy();"

    def test_element_assertions(self, ctx):
        assert _one("banner.assertVisible();", ctx) == "await expect((await this.banner())).toBeVisible();"
        assert _one('banner.verifyText("Hi");', ctx) == 'await expect.soft((await this.banner())).toHaveText("Hi");'
        assert _one("banner.assertNotPresent();", ctx) == "await expect((await this.banner())).not.toBeAttached();"


class TestPassthrough:

    def test_logging(self, ctx):
        assert _one('System.out.println("hi " + user);', ctx) == 'console.log("hi " + user);'
        assert _one('Reporter.log("step done", true);', ctx) == 'console.log("step done");'
        assert _one('logger.info("x");', ctx) == 'console.log("x");'

    def test_navigation(self, ctx):
        assert _one('driver.get("https://example.com");', ctx) == 'await this.page.goto("https://example.com");'
        assert _one("getDriver().navigate().refresh();", ctx) == "await this.page.reload();"
        assert _one("driver.navigate().back();", ctx) == "await this.page.goBack();"

    def test_own_method_call(self, ctx):
        assert _one("login(user, \"secret\");", ctx) == 'await this.login(user, "secret");'

    def test_static_method_call_passes_page(self, ctx):
        assert _one("create(user);", ctx) == "await LoginPage.create(this.page, user);"

    def test_receiver_call(self, ctx):
        assert _one("helper.doThing(1);", ctx) == "await helper.doThing(1);"

    def test_literal_declaration_and_return(self, ctx):
        assert _one("int retries = 3;", ctx) == "const retries = 3;"
        assert _one("return true;", ctx) == "return true;"
        assert _one("return this;", ctx) == "return this;"

    def test_throw_unknown_exception_becomes_error(self, ctx):
        assert _one('throw new IllegalStateException("bad");', ctx) == 'throw new Error("bad");'

    def test_expression_rewrites(self, ctx):
        assert translate_expression("driver.getCurrentUrl()", ctx) == "this.page.url()"
        assert translate_expression('banner.getText().equals("x")', ctx) == (
            'await (await this.banner()).innerText() === "x"'
        )


class TestProjectAware:

    @pytest.fixture
    def project_ctx(self):
        project = build_project_context(
            [
                SourceDocument.from_text(LOGIN_PAGE, path=Path("/src/pages/LoginPage.java")),
                SourceDocument.from_text(
                    LOGIN_FAILED_EXCEPTION, path=Path("/src/exceptions/LoginFailedException.java")
                ),
            ],
            root=Path("/src"),
        )
        context = ConversionContext(project=project, module="steps/LoginSteps")
        context.enter_method([], page_ref="page", self_ref=None)
        return context

    def test_page_object_instantiation(self, project_ctx):
        assert _one("LoginPage loginPage = new LoginPage(driver);", project_ctx) == (
            "const loginPage = new LoginPage(page);"
        )
        assert list(project_ctx.imports) == ["import { LoginPage } from '../pages/LoginPage';"]
        assert project_ctx.locals["loginPage"] == "LoginPage"

    def test_chained_page_call(self, project_ctx):
        assert _one('new LoginPage().login("a", "b");', project_ctx) == (
            'await new LoginPage(page).login("a", "b");'
        )

    def test_project_exception(self, project_ctx):
        assert _one('throw new LoginFailedException("nope");', project_ctx) == (
            'throw new LoginFailedException("nope");'
        )
        assert "import { LoginFailedException } from '../exceptions/LoginFailedException';" in project_ctx.imports

    def test_imports_are_deduplicated_by_exact_text(self, project_ctx):
        _one("LoginPage a = new LoginPage(driver);", project_ctx)
        _one("LoginPage b = new LoginPage(driver);", project_ctx)
        assert len(project_ctx.imports) == 1


# ---------------------------------------------------------------------------
# Failure policy
# ---------------------------------------------------------------------------


class TestFailurePolicy:

    def test_unmatched_in_method_becomes_todo(self, ctx):
        assert _one("int x = computeSomething();", ctx) == "// TODO: int x = computeSomething();"
        (diagnostic,) = ctx.diagnostics
        assert diagnostic.line == 7
        assert diagnostic.reason == "emitted as TODO"
        assert str(diagnostic) == "line 7: emitted as TODO: int x = computeSomething();"

    def test_unmatched_outside_method_is_dropped(self):
        context = ConversionContext()
        lines = translate_statement(Statement(text="int x = computeSomething();", line=3, end_line=3), context)
        assert lines == []
        assert context.diagnostics[0].reason == "no pattern match"
        assert context.diagnostics[0].line == 3

    def test_driver_calls_without_mapping_become_todo(self, ctx):
        assert _one("driver.manage().window().maximize();", ctx).startswith("// TODO: ")

    def test_two_statements_on_one_line_become_todo(self, ctx):
        text = "loginButton.click(); loginButton.click();"
        assert _one(text, ctx) == f"// TODO: {text}"
        assert ctx.diagnostics[-1].reason == "emitted as TODO"

    def test_semicolons_inside_strings_do_not_split(self, ctx):
        assert _one('System.out.println("a; b");', ctx) == 'console.log("a; b");'

    def test_lambdas_become_todo(self, ctx):
        assert _one("items.forEach(i -> { i.click(); });", ctx).startswith("// TODO: ")
