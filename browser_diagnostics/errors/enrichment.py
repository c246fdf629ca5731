import asyncio
import logging
from typing import TYPE_CHECKING

from browser_diagnostics.analyzer.service import PageAnalyzer
from browser_diagnostics.analyzer.views import PageStructureAnalysis
from browser_diagnostics.discovery.service import ElementDiscovery
from browser_diagnostics.discovery.views import AlternativeElement, SearchCriteria
from browser_diagnostics.errors.suggestions import generate_suggestions
from browser_diagnostics.errors.views import BatchFailureContext, EnrichedError, ExecutedStep, FailedStep
from browser_diagnostics.resources.service import ResourceManager
from browser_diagnostics.utils import deduplicate, time_execution_async

if TYPE_CHECKING:
	from browser_diagnostics.types import Page

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.8


def format_alternatives(message: str, alternatives: list[AlternativeElement]) -> str:
	"""Append a ranked listing of alternatives to an error message."""
	if not alternatives:
		return message
	lines = [message, '', 'Alternative elements found:']
	for index, alt in enumerate(alternatives, start=1):
		lines.append(f'{index}. {alt.selector} (confidence: {alt.confidence * 100:.0f}%) - {alt.reason}')
	return '\n'.join(lines)


class ErrorEnrichment:
	"""Turns a raw driver failure into an EnrichedError for a specific scenario.

	Diagnostics are best effort: if discovery or page analysis fails, the
	enriched error still carries the original message and whatever suggestions
	could be derived from the parts that succeeded.
	"""

	def __init__(
		self,
		page: 'Page | None',
		resource_manager: ResourceManager | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.logger = logger or logging.getLogger(__name__)
		self.resource_manager = resource_manager or ResourceManager(logger=self.logger)
		self._owns_resource_manager = resource_manager is None
		self.page_analyzer = PageAnalyzer(page, resource_manager=self.resource_manager, logger=self.logger)
		self.element_discovery = ElementDiscovery(page, resource_manager=self.resource_manager, logger=self.logger)
		self._disposed = False

	async def _analyze_structure(self) -> PageStructureAnalysis | None:
		try:
			return await self.page_analyzer.analyze_page_structure()
		except Exception as e:
			self.logger.warning(f'Page structure analysis failed during enrichment: {type(e).__name__}: {e}')
			return None

	async def _discover(
		self,
		selector: str,
		search_criteria: SearchCriteria | dict | None,
		max_alternatives: int | None,
	) -> list[AlternativeElement]:
		if not search_criteria:
			return []
		try:
			return await self.element_discovery.find_alternative_elements(
				search_criteria, max_results=max_alternatives, original_selector=selector
			)
		except Exception as e:
			self.logger.warning(f'Element discovery failed during enrichment: {type(e).__name__}: {e}')
			return []

	@time_execution_async('--enrich_element_not_found_error')
	async def enrich_element_not_found_error(
		self,
		original_error: BaseException,
		selector: str,
		search_criteria: SearchCriteria | dict | None = None,
		max_alternatives: int | None = None,
	) -> EnrichedError:
		alternatives, page_structure = await asyncio.gather(
			self._discover(selector, search_criteria, max_alternatives),
			self._analyze_structure(),
		)

		suggestions: list[str] = []
		if alternatives:
			suggestions.append(f'Try using one of the {len(alternatives)} alternative elements found')
			if alternatives[0].confidence > HIGH_CONFIDENCE:
				suggestions.append(f'High confidence match available: {alternatives[0].selector}')

		suggestions.extend(generate_suggestions('Element not found', operation='findElement', component='ErrorEnrichment'))

		if page_structure:
			if page_structure.iframes.detected:
				suggestions.append('Element might be inside an iframe')
				if page_structure.iframes.inaccessible:
					suggestions.append('Some iframes are not accessible - check cross-origin restrictions')
			if page_structure.modal_states.blocked_by:
				suggestions.append('Page has active modal dialog - handle it first')
			if page_structure.elements.missing_aria > 0:
				suggestions.append('Some elements lack proper ARIA attributes - consider using text-based selectors')

		return EnrichedError(
			format_alternatives(str(original_error), alternatives),
			original_error=original_error,
			alternatives=alternatives,
			page_structure=page_structure,
			suggestions=deduplicate(suggestions),
		)

	@time_execution_async('--enrich_timeout_error')
	async def enrich_timeout_error(
		self,
		original_error: BaseException,
		operation: str,
		selector: str | None = None,
	) -> EnrichedError:
		page_structure = await self._analyze_structure()

		suggestions = generate_suggestions('timeout', operation=operation, component='ErrorEnrichment', selector=selector)
		if page_structure:
			if page_structure.modal_states.blocked_by:
				suggestions.append(f'Page has active modal dialog - handle it before performing {operation}')
			if page_structure.iframes.detected:
				suggestions.append('Element might be inside an iframe')
		suggestions.append(f'Wait for page load completion before performing {operation}')

		return EnrichedError(
			str(original_error),
			original_error=original_error,
			page_structure=page_structure,
			suggestions=deduplicate(suggestions),
		)

	@time_execution_async('--enrich_batch_failure_error')
	async def enrich_batch_failure_error(
		self,
		original_error: BaseException,
		failed_step: FailedStep | dict,
		executed_steps: list[ExecutedStep] | list[dict],
	) -> EnrichedError:
		batch_context = BatchFailureContext.model_validate({'failed_step': failed_step, 'executed_steps': executed_steps})
		step = batch_context.failed_step
		page_structure = await self._analyze_structure()

		suggestions = [f'Batch execution failed at step {step.step_index} ({step.tool_name})']
		if page_structure and page_structure.modal_states.blocked_by:
			suggestions.append('Modal dialog detected - may block subsequent operations')
		if step.selector:
			suggestions.append(f'Failed selector: {step.selector} - check element availability')
		suggestions.append('Consider adding wait steps between operations')
		suggestions.append('Verify page state changes after each navigation step')

		return EnrichedError(
			str(original_error),
			original_error=original_error,
			page_structure=page_structure,
			suggestions=suggestions,
			batch_context=batch_context,
		)

	async def dispose(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		await asyncio.gather(self.element_discovery.dispose(), self.page_analyzer.dispose(), return_exceptions=True)
		if self._owns_resource_manager:
			await self.resource_manager.close()
