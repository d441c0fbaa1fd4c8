"""
pomshift - QAF / Selenium page objects to Playwright TypeScript.
"""

__version__ = "0.1.0"
