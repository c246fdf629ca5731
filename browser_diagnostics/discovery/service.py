import asyncio
import logging
from dataclasses import dataclass, field
from importlib import resources
from typing import TYPE_CHECKING, Any

from browser_diagnostics.config import CONFIG
from browser_diagnostics.discovery.utils import calculate_text_similarity
from browser_diagnostics.discovery.views import (
	ATTRIBUTE_MATCH_CONFIDENCE,
	IMPLICIT_ROLE_MATCH_CONFIDENCE,
	IMPLICIT_ROLE_SELECTORS,
	ROLE_MATCH_CONFIDENCE,
	TAG_MATCH_CONFIDENCE,
	TEXT_MATCH_THRESHOLD,
	AlternativeElement,
	SearchCriteria,
)
from browser_diagnostics.exceptions import PageUnavailableError
from browser_diagnostics.resources.handle import SmartHandle, SmartHandleBatch
from browser_diagnostics.resources.service import ResourceManager, safe_dispose, safe_dispose_all
from browser_diagnostics.utils import time_execution_async

if TYPE_CHECKING:
	from browser_diagnostics.types import ElementHandle, Page

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
	return value.replace('\\', '\\\\').replace('"', '\\"')


@dataclass
class _DiscoveryRun:
	"""Handles acquired by one find_alternative_elements() call"""

	limit: int
	alternatives: list[AlternativeElement] = field(default_factory=list)
	# raw handles returned by the driver and not yet wrapped or disposed, keyed by id()
	pending: dict[int, Any] = field(default_factory=dict)

	def claim(self, element: Any) -> None:
		self.pending.pop(id(element), None)


class ElementDiscovery:
	"""Finds plausible replacements for a selector that matched nothing.

	Each strategy (text, role, tag name, attributes) is capped independently at the
	effective limit; results are then deduplicated by selector, sorted by confidence
	and truncated. Every handle that is not returned to the caller is disposed here.
	"""

	def __init__(
		self,
		page: 'Page | None',
		resource_manager: ResourceManager | None = None,
		max_batch_size: int | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.logger = logger or logging.getLogger(__name__)
		self.resource_manager = resource_manager or ResourceManager(logger=self.logger)
		self._owns_resource_manager = resource_manager is None
		self.max_batch_size = max_batch_size or CONFIG.BROWSER_DIAGNOSTICS_MAX_BATCH_SIZE
		self._batch = SmartHandleBatch(self.resource_manager)
		self._disposed = False
		self.js_code = resources.files('browser_diagnostics.discovery').joinpath('generateSelector.js').read_text()

	def _get_page(self) -> 'Page':
		if self._disposed:
			raise PageUnavailableError('ElementDiscovery has been disposed')
		if self.page is None:
			raise PageUnavailableError('Page is not available')
		return self.page

	@time_execution_async('--find_alternative_elements')
	async def find_alternative_elements(
		self,
		search_criteria: SearchCriteria | dict,
		max_results: int | None = None,
		original_selector: str | None = None,
	) -> list[AlternativeElement]:
		page = self._get_page()
		if isinstance(search_criteria, dict):
			search_criteria = SearchCriteria.model_validate(search_criteria)
		if max_results is None:
			max_results = CONFIG.BROWSER_DIAGNOSTICS_MAX_RESULTS

		run = _DiscoveryRun(limit=min(max_results, self.max_batch_size))
		if run.limit <= 0 or search_criteria.is_empty():
			return []

		try:
			if search_criteria.text:
				await self._find_by_text(page, search_criteria.text, run)
			if search_criteria.role:
				await self._find_by_role(page, search_criteria.role, run)
			if search_criteria.tag_name:
				await self._find_by_tag_name(page, search_criteria.tag_name, run)
			if search_criteria.attributes:
				await self._find_by_attributes(page, search_criteria.attributes, run)

			results = await self._deduplicate_and_sort(run.alternatives, run.limit)
		except Exception:
			await self._dispose_run(run)
			raise
		finally:
			self._batch.discard_disposed()

		if original_selector:
			self.logger.debug(f'🔎 Found {len(results)} alternative(s) for "{original_selector}"')
		return results

	# region - Strategies

	async def _query(self, page: 'Page', selector: str, run: _DiscoveryRun) -> list['ElementHandle']:
		elements = await page.query_selector_all(selector)
		for element in elements:
			run.pending[id(element)] = element
		return elements

	async def _find_by_text(self, page: 'Page', text: str, run: _DiscoveryRun) -> None:
		quoted = _quote(text)
		selectors = [
			f'text={text}',
			f':text("{quoted}")',
			f'[value="{quoted}"]',
			f'[placeholder="{quoted}"]',
			f'[aria-label="{quoted}"]',
		]

		found = 0
		for selector in selectors:
			if found >= run.limit:
				break
			try:
				elements = await self._query(page, selector, run)
			except Exception as e:
				self.logger.debug(f'Text strategy {selector!r} failed: {type(e).__name__}: {e}')
				continue

			for element in elements:
				if found >= run.limit:
					await self._drop(element, run, 'find_by_text-excess')
					continue
				try:
					element_text = await self._extract_element_text(element)
					confidence = calculate_text_similarity(text, element_text)
					if confidence <= TEXT_MATCH_THRESHOLD:
						await self._drop(element, run, 'find_by_text-threshold')
						continue
					if await self._keep(
						element,
						run,
						confidence=confidence,
						reason=f'text match: "{element_text[:50].strip()}"',
						element_id=f'text_{found}',
					):
						found += 1
				except Exception as e:
					self.logger.debug(f'Text candidate processing failed: {type(e).__name__}: {e}')
					await self._drop(element, run, 'find_by_text-element')

	async def _find_by_role(self, page: 'Page', role: str, run: _DiscoveryRun) -> None:
		found = 0
		try:
			elements = await self._query(page, f'[role="{_quote(role)}"]', run)
		except Exception as e:
			self.logger.debug(f'Role strategy failed: {type(e).__name__}: {e}')
			elements = []

		for element in elements:
			if found >= run.limit:
				await self._drop(element, run, 'find_by_role-excess')
				continue
			if await self._keep(
				element,
				run,
				confidence=ROLE_MATCH_CONFIDENCE,
				reason=f'role match: "{role}"',
				element_id=f'role_{found}',
			):
				found += 1

		if found < run.limit:
			await self._find_implicit_role_elements(page, role, run.limit - found, run)

	async def _find_implicit_role_elements(self, page: 'Page', role: str, budget: int, run: _DiscoveryRun) -> None:
		found = 0
		for tag_selector in IMPLICIT_ROLE_SELECTORS.get(role, []):
			if found >= budget:
				break
			try:
				elements = await self._query(page, tag_selector, run)
			except Exception as e:
				self.logger.debug(f'Implicit role strategy {tag_selector!r} failed: {type(e).__name__}: {e}')
				continue

			for element in elements:
				if found >= budget:
					await self._drop(element, run, 'find_implicit_role-excess')
					continue
				if await self._keep(
					element,
					run,
					confidence=IMPLICIT_ROLE_MATCH_CONFIDENCE,
					reason=f'implicit role match: "{role}" via {tag_selector}',
					element_id=f'implicit_{found}',
				):
					found += 1

	async def _find_by_tag_name(self, page: 'Page', tag_name: str, run: _DiscoveryRun) -> None:
		found = 0
		try:
			elements = await self._query(page, tag_name, run)
		except Exception as e:
			self.logger.debug(f'Tag name strategy failed: {type(e).__name__}: {e}')
			return

		for element in elements:
			if found >= run.limit:
				await self._drop(element, run, 'find_by_tag_name-excess')
				continue
			if await self._keep(
				element,
				run,
				confidence=TAG_MATCH_CONFIDENCE,
				reason=f'tag name match: "{tag_name}"',
				element_id=f'tag_{found}',
			):
				found += 1

	async def _find_by_attributes(self, page: 'Page', attributes: dict[str, str], run: _DiscoveryRun) -> None:
		found = 0
		for name, value in attributes.items():
			if found >= run.limit:
				break
			try:
				elements = await self._query(page, f'[{name}="{_quote(value)}"]', run)
			except Exception as e:
				self.logger.debug(f'Attribute strategy [{name}] failed: {type(e).__name__}: {e}')
				continue

			for element in elements:
				if found >= run.limit:
					await self._drop(element, run, 'find_by_attributes-excess')
					continue
				if await self._keep(
					element,
					run,
					confidence=ATTRIBUTE_MATCH_CONFIDENCE,
					reason=f'attribute match: {name}="{value}"',
					element_id=f'attr_{found}',
				):
					found += 1

	# endregion

	# region - Helpers

	async def _extract_element_text(self, element: 'ElementHandle') -> str:
		text_content, value, placeholder, aria_label = await asyncio.gather(
			element.text_content(),
			element.get_attribute('value'),
			element.get_attribute('placeholder'),
			element.get_attribute('aria-label'),
		)
		return ' '.join(part or '' for part in (text_content, value, placeholder, aria_label)).strip()

	async def generate_selector(self, element: 'ElementHandle | SmartHandle') -> str:
		"""Build a CSS selector for the element inside the page."""
		return await element.evaluate(self.js_code)

	async def _keep(
		self,
		element: 'ElementHandle',
		run: _DiscoveryRun,
		confidence: float,
		reason: str,
		element_id: str,
	) -> bool:
		run.claim(element)
		handle = self._batch.add(element)
		try:
			selector = await self.generate_selector(handle)
		except Exception as e:
			self.logger.debug(f'Selector generation failed for {element_id}: {type(e).__name__}: {e}')
			await handle.dispose()
			return False
		run.alternatives.append(
			AlternativeElement(
				selector=selector,
				confidence=confidence,
				reason=reason,
				element=handle,
				element_id=element_id,
			)
		)
		return True

	async def _drop(self, element: 'ElementHandle', run: _DiscoveryRun, operation: str) -> None:
		run.claim(element)
		await safe_dispose(element, 'ElementHandle', operation)

	async def _deduplicate_and_sort(self, alternatives: list[AlternativeElement], limit: int) -> list[AlternativeElement]:
		unique: dict[str, AlternativeElement] = {}
		dropped: list[AlternativeElement] = []
		for alternative in alternatives:
			if alternative.selector in unique:
				dropped.append(alternative)
			else:
				unique[alternative.selector] = alternative

		# sorted() is stable, so equal confidences keep discovery order
		ranked = sorted(unique.values(), key=lambda alt: alt.confidence, reverse=True)
		dropped.extend(ranked[limit:])

		await safe_dispose_all((alt.element for alt in dropped if alt.element), 'SmartHandle', 'deduplicate_and_sort')
		return ranked[:limit]

	async def _dispose_run(self, run: _DiscoveryRun) -> None:
		await safe_dispose_all(list(run.pending.values()), 'ElementHandle', 'find_alternative_elements-cleanup')
		run.pending.clear()
		await safe_dispose_all(
			(alt.element for alt in run.alternatives if alt.element),
			'SmartHandle',
			'find_alternative_elements-cleanup',
		)

	# endregion

	def get_memory_stats(self) -> dict[str, Any]:
		return {
			'active_handles': self._batch.get_active_count(),
			'is_disposed': self._disposed,
			'max_batch_size': self.max_batch_size,
		}

	async def dispose(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		await self._batch.dispose()
		if self._owns_resource_manager:
			await self.resource_manager.close()
