"""
Tests for ElementDiscovery against a real headless Chromium page.

Covers ranking, per-strategy confidences, result caps, and the handle accounting
that guarantees every handle not returned to the caller is disposed.
"""

from unittest.mock import AsyncMock

import pytest

from browser_diagnostics.discovery import ElementDiscovery, SearchCriteria
from browser_diagnostics.discovery.views import (
	ATTRIBUTE_MATCH_CONFIDENCE,
	IMPLICIT_ROLE_MATCH_CONFIDENCE,
	ROLE_MATCH_CONFIDENCE,
	TAG_MATCH_CONFIDENCE,
)
from browser_diagnostics.exceptions import PageUnavailableError

ROLE_BUTTONS_HTML = '<div id="list">' + ''.join(f'<div role="button">Item {i}</div>' for i in range(20)) + '</div>'


@pytest.fixture
async def discovery(page, resource_manager):
	discovery = ElementDiscovery(page, resource_manager=resource_manager)
	yield discovery
	await discovery.dispose()


class TestTextStrategy:
	@pytest.mark.asyncio
	async def test_exact_text_match_ranks_first(self, page, discovery):
		"""A failed click on 'Submit' should surface both the button and the submit input."""
		await page.set_content('<button>Submit</button><input type="submit" value="Submit Form">')

		results = await discovery.find_alternative_elements({'text': 'Submit'}, original_selector='#missing')

		assert len(results) >= 2
		assert all(alt.reason.startswith('text match:') for alt in results)
		assert results[0].confidence == 1.0
		assert results[0].selector == 'body > button:nth-child(1)'

		by_selector = {alt.selector: alt for alt in results}
		assert 'body > input:nth-child(2)' in by_selector
		assert by_selector['body > input:nth-child(2)'].confidence == 0.8

		# containers holding the text are not alternatives
		assert all(alt.selector != 'html' and not alt.selector.startswith('html > body') for alt in results)

	@pytest.mark.asyncio
	async def test_results_are_sorted_and_unique(self, page, discovery):
		await page.set_content('<button>Save</button><a href="#">Save draft</a><span aria-label="Save">S</span>')

		results = await discovery.find_alternative_elements({'text': 'Save'})

		confidences = [alt.confidence for alt in results]
		assert confidences == sorted(confidences, reverse=True)
		selectors = [alt.selector for alt in results]
		assert len(selectors) == len(set(selectors))


class TestStructuralStrategies:
	@pytest.mark.asyncio
	async def test_role_results_are_capped_and_excess_handles_disposed(self, page, resource_manager, discovery):
		await page.set_content(ROLE_BUTTONS_HTML)
		before = resource_manager.get_active_count()

		results = await discovery.find_alternative_elements({'role': 'button'}, max_results=5)

		assert len(results) == 5
		assert resource_manager.get_active_count() - before == 5
		assert all(alt.confidence == ROLE_MATCH_CONFIDENCE for alt in results)
		assert all(alt.reason == 'role match: "button"' for alt in results)
		assert results[0].selector == 'div#list > div:nth-child(1)'

	@pytest.mark.asyncio
	async def test_implicit_role_fills_remaining_budget(self, page, discovery):
		await page.set_content('<button>Go</button>')

		results = await discovery.find_alternative_elements({'role': 'button'})

		assert len(results) == 1
		assert results[0].confidence == IMPLICIT_ROLE_MATCH_CONFIDENCE
		assert results[0].reason == 'implicit role match: "button" via button'

	@pytest.mark.asyncio
	async def test_attribute_match(self, page, discovery):
		await page.set_content('<input data-testid="email" type="text">')

		results = await discovery.find_alternative_elements(SearchCriteria(attributes={'data-testid': 'email'}))

		assert len(results) == 1
		assert results[0].confidence == ATTRIBUTE_MATCH_CONFIDENCE
		assert results[0].reason == 'attribute match: data-testid="email"'

	@pytest.mark.asyncio
	async def test_tag_name_match(self, page, discovery):
		await page.set_content('<select id="country"><option>NL</option></select>')

		results = await discovery.find_alternative_elements({'tag_name': 'select'})

		assert len(results) == 1
		assert results[0].selector == '#country'
		assert results[0].confidence == TAG_MATCH_CONFIDENCE

	@pytest.mark.asyncio
	async def test_max_batch_size_caps_results(self, page, resource_manager):
		await page.set_content(ROLE_BUTTONS_HTML)
		discovery = ElementDiscovery(page, resource_manager=resource_manager, max_batch_size=3)
		try:
			results = await discovery.find_alternative_elements({'role': 'button'}, max_results=10)
			assert len(results) == 3
		finally:
			await discovery.dispose()


class TestHandleLifecycle:
	@pytest.mark.asyncio
	async def test_returned_handles_are_usable_until_dispose(self, page, resource_manager):
		await page.set_content(ROLE_BUTTONS_HTML)
		discovery = ElementDiscovery(page, resource_manager=resource_manager)

		results = await discovery.find_alternative_elements({'role': 'button'}, max_results=2)
		assert await results[0].element.text_content() == 'Item 0'
		assert discovery.get_memory_stats()['active_handles'] == 2

		await discovery.dispose()

		assert all(alt.element.is_disposed() for alt in results)
		assert resource_manager.get_active_count() == 0

	@pytest.mark.asyncio
	async def test_failure_disposes_everything_from_the_call(self, page, resource_manager, discovery):
		await page.set_content(ROLE_BUTTONS_HTML)
		before = resource_manager.get_active_count()
		discovery._deduplicate_and_sort = AsyncMock(side_effect=RuntimeError('ranking exploded'))

		with pytest.raises(RuntimeError, match='ranking exploded'):
			await discovery.find_alternative_elements({'role': 'button'}, max_results=5)

		assert resource_manager.get_active_count() == before

	@pytest.mark.asyncio
	async def test_selector_serialization_is_excluded_from_dump(self, page, discovery):
		await page.set_content('<button id="go">Go</button>')

		results = await discovery.find_alternative_elements({'text': 'Go'}, max_results=1)

		dumped = results[0].model_dump()
		assert 'element' not in dumped
		assert dumped['selector'] == '#go'


class TestEdgeCases:
	@pytest.mark.asyncio
	async def test_empty_criteria_returns_nothing(self, page, discovery):
		await page.set_content('<button>Submit</button>')
		assert await discovery.find_alternative_elements({}) == []

	@pytest.mark.asyncio
	async def test_zero_max_results_returns_nothing(self, page, discovery):
		await page.set_content('<button>Submit</button>')
		assert await discovery.find_alternative_elements({'text': 'Submit'}, max_results=0) == []

	@pytest.mark.asyncio
	async def test_missing_page_raises(self):
		discovery = ElementDiscovery(None)
		with pytest.raises(PageUnavailableError):
			await discovery.find_alternative_elements({'text': 'Submit'})
		await discovery.dispose()

	@pytest.mark.asyncio
	async def test_disposed_discovery_raises(self, page, resource_manager):
		discovery = ElementDiscovery(page, resource_manager=resource_manager)
		await discovery.dispose()
		with pytest.raises(PageUnavailableError):
			await discovery.find_alternative_elements({'text': 'Submit'})

	@pytest.mark.asyncio
	async def test_failing_strategy_is_skipped(self, resource_manager):
		page = AsyncMock()
		page.query_selector_all.side_effect = RuntimeError('selector engine crashed')
		discovery = ElementDiscovery(page, resource_manager=resource_manager)

		results = await discovery.find_alternative_elements({'text': 'Submit', 'role': 'button', 'tag_name': 'button'})

		assert results == []
		await discovery.dispose()
