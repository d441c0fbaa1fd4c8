"""Shared pytest fixtures for the pomshift test suite."""

from pathlib import Path

import pytest

from pomshift.config import Settings
from pomshift.core.source import SourceDocument


# ---------------------------------------------------------------------------
# Java sources
# ---------------------------------------------------------------------------

LOGIN_PAGE = """\
package com.example.pages;

import com.qmetry.qaf.automation.ui.annotations.FindBy;
import com.qmetry.qaf.automation.ui.webdriver.QAFWebElement;

public class LoginPage extends WebDriverBaseTestPage<WebDriverTestPage> {

    @FindBy(locator = "id=username")
    private QAFWebElement usernameInput;

    @FindBy(locator = "{\\"locator\\":\\"xpath=//button[@id='ok']\\",\\"desc\\":\\"OK button\\"}")
    private QAFWebElement loginButton;

    public LoginPage() {
        super();
    }

    public void login(String user, String password) {
        usernameInput.sendKeys(user);
        loginButton.click();
        Thread.sleep(2000);
        int x = computeSomething();
    }

    public String getWelcomeText() {
        return driver.findElement(By.xpath("//div[@class='welcome']")).getText();
    }
}
"""

HOME_PAGE = """\
package com.example.pages;

public class HomePage extends BasePage {

    @FindBy(css = ".logout")
    private WebElement logoutLink;

    public void logout() {
        logoutLink.click();
        if (menuButton.isDisplayed()) {
            menuButton.click();
        } else {
            System.out.println("menu hidden");
        }
    }

    public void fail(String reason) {
        throw new LoginFailedException(reason);
    }
}
"""

BASE_PAGE = """\
package com.example.pages;

public class BasePage {

    @FindBy(locator = "css=#menu")
    protected QAFWebElement menuButton;

    public void open(String url) {
        driver.get(url);
    }
}
"""

LOGIN_STEPS = """\
package com.example.steps;

import com.qmetry.qaf.automation.step.QAFTestStep;

public class LoginSteps {

    @QAFTestStep(description = "user logs in as {0} with password {1}")
    public void userLogsIn(String user, String password) {
        driver.get("https://example.com/login");
        LoginPage loginPage = new LoginPage(driver);
        loginPage.login(user, password);
    }

    @Then("the title is {string}")
    public void titleIs(String expected) {
        assertEquals(driver.getTitle(), expected);
    }
}
"""

LOGIN_FAILED_EXCEPTION = """\
package com.example.exceptions;

public class LoginFailedException extends RuntimeException {
    public LoginFailedException(String message) {
        super(message);
    }
}
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def login_page_doc():
    return SourceDocument.from_text(LOGIN_PAGE, path=Path("pages/LoginPage.java"))


@pytest.fixture
def steps_doc():
    return SourceDocument.from_text(LOGIN_STEPS, path=Path("steps/LoginSteps.java"))


@pytest.fixture
def exception_doc():
    return SourceDocument.from_text(
        LOGIN_FAILED_EXCEPTION, path=Path("exceptions/LoginFailedException.java")
    )


@pytest.fixture
def java_project(tmp_path):
    """A small multi-package QAF project on disk."""
    root = tmp_path / "src"
    files = {
        "pages/LoginPage.java": LOGIN_PAGE,
        "pages/HomePage.java": HOME_PAGE,
        "pages/BasePage.java": BASE_PAGE,
        "steps/LoginSteps.java": LOGIN_STEPS,
        "exceptions/LoginFailedException.java": LOGIN_FAILED_EXCEPTION,
        "target/Generated.java": "public class Generated {}\n",
        "README.md": "not java\n",
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
