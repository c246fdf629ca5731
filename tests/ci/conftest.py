"""
Pytest configuration for browser-diagnostics CI tests.

Pins the diagnostics environment variables so a developer's .env never changes test
outcomes, and provides a real headless Chromium page for tests that need a DOM.
"""

import os

import pytest
from dotenv import load_dotenv
from playwright.async_api import async_playwright

# Load environment variables before any imports
load_dotenv()

from browser_diagnostics.config import reset_thresholds
from browser_diagnostics.resources import ResourceManager


@pytest.fixture(autouse=True)
def setup_test_environment():
	"""
	Automatically set up test environment for all tests.
	"""

	original_env = {}
	test_env_vars = {
		'BROWSER_DIAGNOSTICS_LOGGING_LEVEL': 'debug',
		'BROWSER_DIAGNOSTICS_LEVEL': 'standard',
		'BROWSER_DIAGNOSTICS_MAX_RESULTS': '10',
		'BROWSER_DIAGNOSTICS_MAX_BATCH_SIZE': '100',
		'BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS': '30000',
		'BROWSER_DIAGNOSTICS_MAX_ERROR_HISTORY': '100',
	}

	for key, value in test_env_vars.items():
		original_env[key] = os.environ.get(key)
		os.environ[key] = value

	for key in ('BROWSER_DIAGNOSTICS_PAGE_ANALYSIS_MS', 'BROWSER_DIAGNOSTICS_MAX_MEMORY_MB'):
		original_env[key] = os.environ.pop(key, None)

	reset_thresholds()

	yield

	reset_thresholds()

	# Restore original environment
	for key, value in original_env.items():
		if value is None:
			os.environ.pop(key, None)
		else:
			os.environ[key] = value


@pytest.fixture
async def browser():
	async with async_playwright() as playwright:
		browser = await playwright.chromium.launch(headless=True)
		yield browser
		await browser.close()


@pytest.fixture
async def page(browser):
	context = await browser.new_context()
	page = await context.new_page()
	yield page
	await context.close()


@pytest.fixture
async def resource_manager():
	async with ResourceManager(dispose_timeout=30_000) as manager:
		yield manager
