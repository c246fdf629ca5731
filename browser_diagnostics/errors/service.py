import asyncio
import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

from browser_diagnostics.analyzer.service import PageAnalyzer
from browser_diagnostics.analyzer.views import PageStructureAnalysis
from browser_diagnostics.config import MB
from browser_diagnostics.discovery.views import SearchCriteria
from browser_diagnostics.errors.enrichment import ErrorEnrichment
from browser_diagnostics.errors.views import (
	DIAGNOSTIC_COMPONENTS,
	DiagnosticComponent,
	DiagnosticError,
	EnrichedError,
	ErrorHistoryEntry,
	ErrorStatistics,
	FrameContext,
	PerformanceInfo,
	ToolContext,
)
from browser_diagnostics.level import DiagnosticConfig, DiagnosticLevelManager
from browser_diagnostics.resources.service import ResourceManager
from browser_diagnostics.utils import deduplicate, now_ms, time_execution_async

if TYPE_CHECKING:
	from browser_diagnostics.types import Page

logger = logging.getLogger(__name__)

SIMILAR_ERROR_WINDOW_MS = 300_000
SIMILAR_ERROR_LIMIT = 5
RECURRING_ERROR_COUNT = 3
RECENT_ERROR_WINDOW_MS = 600_000
DEFAULT_TIMEOUT_MS = 30_000
SLOW_OPERATION_MS = 1000
MANY_VISIBLE_ELEMENTS = 10_000
FEW_VISIBLE_ELEMENTS = 1000
HIGH_MEMORY_USAGE = 50 * MB
RECURRENCE_PREFIX = 'This error has occurred'
PATTERNS_HEADER = 'Common resolution patterns:'


class EnhancedErrorHandler:
	"""Entry point for turning failures into DiagnosticErrors.

	Keeps a bounded history of processed errors so that recurring failures of the
	same component/operation pick up a recurrence notice and the suggestions that
	kept coming back.
	"""

	def __init__(
		self,
		page: 'Page | None',
		diagnostic_config: DiagnosticConfig | dict[str, Any] | None = None,
		resource_manager: ResourceManager | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.logger = logger or logging.getLogger(__name__)
		self.resource_manager = resource_manager or ResourceManager(logger=self.logger)
		self._owns_resource_manager = resource_manager is None
		self.diagnostic_manager = DiagnosticLevelManager(diagnostic_config)
		self.page_analyzer = PageAnalyzer(page, resource_manager=self.resource_manager, logger=self.logger)
		self.error_enrichment = ErrorEnrichment(page, resource_manager=self.resource_manager, logger=self.logger)
		self.max_error_history = self.diagnostic_manager.config.max_error_history
		self._error_history: list[ErrorHistoryEntry] = []
		self._disposed = False

	# region - Unified pipeline

	def create_diagnostic_error(
		self,
		error: BaseException,
		component: DiagnosticComponent,
		operation: str,
		execution_time: float | None = None,
		memory_usage: int | None = None,
	) -> DiagnosticError:
		"""Wrap a plain error and record it in the history."""
		diagnostic_error = DiagnosticError.from_error(
			error,
			component,
			operation,
			execution_time=execution_time,
			memory_usage=memory_usage,
			performance_impact='high' if execution_time and execution_time > SLOW_OPERATION_MS else 'low',
		)
		self._add_to_error_history(diagnostic_error, component)
		return diagnostic_error

	@time_execution_async('--process_unified_error')
	async def process_unified_error(
		self,
		error: BaseException,
		component: DiagnosticComponent,
		operation: str,
		context: dict[str, Any] | None = None,
	) -> DiagnosticError:
		start_time = now_ms()
		context = context or {}

		try:
			if isinstance(error, DiagnosticError):
				diagnostic_error = error
			else:
				diagnostic_error = self.create_diagnostic_error(
					error,
					component,
					operation,
					execution_time=context.get('execution_time'),
					memory_usage=context.get('memory_usage'),
				)

			execution_time = context.get('execution_time')
			threshold = context.get('performance_threshold')
			if threshold and execution_time and execution_time > threshold:
				perf_error = DiagnosticError.performance(
					f'Operation {operation} exceeded performance threshold',
					component,
					operation,
					execution_time,
					threshold,
				)
				diagnostic_error.suggestions.extend(perf_error.suggestions)

			if self.diagnostic_manager.should_enable_feature('alternative_suggestions'):
				diagnostic_error.suggestions.extend(await self._contextual_suggestions(component, operation, context))

			similar_errors = self._find_similar_errors(diagnostic_error, component)
			if similar_errors:
				diagnostic_error.suggestions.extend(self._pattern_suggestions(similar_errors))

			return diagnostic_error
		except Exception as processing_error:
			self.logger.warning(
				f'Error processing failed for {component}:{operation}: {type(processing_error).__name__}: {processing_error}'
			)
			return DiagnosticError.from_error(error, component, operation, execution_time=now_ms() - start_time)

	async def _contextual_suggestions(
		self,
		component: DiagnosticComponent,
		operation: str,
		context: dict[str, Any],
	) -> list[str]:
		suggestions: list[str] = []
		try:
			structure = await self.page_analyzer.analyze_page_structure()
		except Exception as e:
			self.logger.warning(f'Context generation failed for {component}:{operation}: {type(e).__name__}: {e}')
			return suggestions

		if component == 'PageAnalyzer':
			if structure.elements.total_visible > MANY_VISIBLE_ELEMENTS:
				suggestions.append('Page has many elements - consider using parallel analysis')
			if structure.iframes.detected:
				suggestions.append('Multiple iframes detected - they may affect analysis performance')
		elif component == 'ElementDiscovery':
			if context.get('selector') and structure.elements.missing_aria > 0:
				suggestions.append('Many elements lack ARIA attributes - try text-based selectors')
			if structure.modal_states.blocked_by:
				suggestions.append('Modal dialogs may be hiding target elements')
		elif component == 'ResourceManager':
			memory_usage = context.get('memory_usage')
			if memory_usage and memory_usage > HIGH_MEMORY_USAGE:
				suggestions.append('High memory usage detected - consider more aggressive cleanup')

		if 'parallel' in operation and structure.elements.total_visible < FEW_VISIBLE_ELEMENTS:
			suggestions.append('Parallel analysis may not be beneficial for simple pages')
		if 'timeout' in operation:
			suggestions.append('Consider adjusting timeout thresholds based on page complexity')

		return suggestions

	# endregion

	# region - History

	def _add_to_error_history(self, error: DiagnosticError, component: DiagnosticComponent) -> None:
		self._error_history.append(ErrorHistoryEntry(error=error, timestamp=now_ms(), component=component))
		if len(self._error_history) > self.max_error_history:
			self._error_history = self._error_history[-self.max_error_history :]

	def _find_similar_errors(self, error: DiagnosticError, component: DiagnosticComponent) -> list[DiagnosticError]:
		now = now_ms()
		similar = [
			entry.error
			for entry in self._error_history
			if entry.component == component
			and entry.error.operation == error.operation
			and now - entry.timestamp < SIMILAR_ERROR_WINDOW_MS
		]
		return similar[-SIMILAR_ERROR_LIMIT:]

	def _pattern_suggestions(self, similar_errors: list[DiagnosticError]) -> list[str]:
		if len(similar_errors) < RECURRING_ERROR_COUNT:
			return []

		suggestions = [f'{RECURRENCE_PREFIX} {len(similar_errors)} times recently - consider reviewing the operation']
		# one vote per error; lines this method added earlier are not candidates
		counts = Counter(
			suggestion
			for error in similar_errors
			for suggestion in deduplicate(error.suggestions)
			if suggestion != PATTERNS_HEADER and not suggestion.startswith(RECURRENCE_PREFIX)
		)
		# most_common() keeps first-seen order among equal counts
		common = [suggestion for suggestion, count in counts.most_common() if count > 1]
		if common:
			suggestions.append(PATTERNS_HEADER)
			suggestions.extend(common[:3])
		return suggestions

	def mark_error_resolved(self, error_id: str) -> bool:
		"""Match by error_id, by timestamp, or by a substring of the message."""
		for entry in self._error_history:
			error = entry.error
			if error.error_id == error_id or str(error.timestamp) == error_id or error_id in error.message:
				entry.resolved = True
				return True
		return False

	def get_error_statistics(self) -> ErrorStatistics:
		now = now_ms()
		history = list(self._error_history)
		errors_by_component = {component: 0 for component in DIAGNOSTIC_COMPONENTS}
		errors_by_operation: dict[str, int] = {}
		for entry in history:
			errors_by_component[entry.component] = errors_by_component.get(entry.component, 0) + 1
			errors_by_operation[entry.error.operation] = errors_by_operation.get(entry.error.operation, 0) + 1

		recent = sum(1 for entry in history if now - entry.timestamp < RECENT_ERROR_WINDOW_MS)
		resolved = sum(1 for entry in history if entry.resolved)
		return ErrorStatistics(
			total_errors=len(history),
			errors_by_component=errors_by_component,
			errors_by_operation=errors_by_operation,
			resolution_rate=resolved / len(history) if history else 1.0,
			recent_error_rate=recent / max(len(history), 1),
		)

	def get_recent_errors(self, limit: int = 10) -> list[ErrorHistoryEntry]:
		return self._error_history[-limit:] if limit > 0 else []

	def clear_error_history(self) -> None:
		self._error_history = []

	# endregion

	# region - Scenario enhancers

	async def enhance_playwright_error(
		self,
		error: BaseException,
		operation: str,
		selector: str | None = None,
		search_criteria: SearchCriteria | dict | None = None,
		timeout: float | None = None,
	) -> BaseException:
		"""Route a driver error to the matching enrichment; returns the error untouched at level `none`."""
		if self.diagnostic_manager.should_skip_diagnostics():
			return error

		if selector and search_criteria and self.diagnostic_manager.should_enable_feature('alternative_suggestions'):
			return await self.error_enrichment.enrich_element_not_found_error(
				error,
				selector,
				search_criteria=search_criteria,
				max_alternatives=self.diagnostic_manager.get_max_alternatives(),
			)

		if 'timeout' in str(error).lower():
			return await self.enhance_timeout_error(error, operation, selector=selector, timeout=timeout or DEFAULT_TIMEOUT_MS)

		structure = None
		if self.diagnostic_manager.should_enable_feature('page_analysis'):
			structure = await self._safe_structure()

		suggestions = self._general_suggestions(error, operation, structure) if structure else []
		return EnrichedError(str(error), original_error=error, page_structure=structure, suggestions=suggestions)

	async def enhance_timeout_error(
		self,
		error: BaseException,
		operation: str,
		selector: str | None = None,
		timeout: float | None = None,
	) -> EnrichedError:
		enriched, frame_context = await asyncio.gather(
			self.error_enrichment.enrich_timeout_error(error, operation, selector=selector),
			self._analyze_frame_context(),
		)
		enriched.context_info = frame_context
		return enriched

	async def enhance_context_error(self, error: BaseException, selector: str, expected_context: str) -> EnrichedError:
		frame_context = await self._analyze_frame_context()
		structure = await self._safe_structure()

		suggestions = [
			f'Expected element in {expected_context} context',
			f'Found {frame_context.available_frames if frame_context else 0} available frames',
			'Try switching to the correct frame context',
		]
		if structure and structure.iframes.detected:
			suggestions.append('Element might be in a different frame - use frame_locator()')

		return EnrichedError(
			str(error),
			original_error=error,
			page_structure=structure,
			suggestions=suggestions,
			context_info=frame_context,
		)

	async def enhance_performance_error(
		self,
		operation: str,
		execution_time: float,
		performance_threshold: float,
		selector: str | None = None,
	) -> EnrichedError:
		structure = await self._safe_structure()
		suggestions = [
			f'Operation took longer than expected ({execution_time:.0f}ms vs {performance_threshold:.0f}ms threshold)',
			'Consider optimizing page load performance',
			'Check for heavy JavaScript execution or network delays',
		]
		if structure and structure.modal_states.blocked_by:
			suggestions.append('Modal dialogs may be causing delays')

		return EnrichedError(
			f'Performance issue: {operation} operation exceeded threshold',
			page_structure=structure,
			suggestions=suggestions,
			performance_info=PerformanceInfo(
				execution_time=execution_time,
				exceeded_threshold=execution_time > performance_threshold,
				threshold=performance_threshold,
			),
		)

	async def enhance_tool_error(
		self,
		tool_name: str,
		error: BaseException,
		selector: str | None = None,
		tool_args: dict[str, Any] | None = None,
	) -> EnrichedError:
		structure = await self._safe_structure()
		return EnrichedError(
			str(error),
			original_error=error,
			page_structure=structure,
			suggestions=self._tool_suggestions(tool_name, error, structure),
			tool_context=ToolContext(tool_name=tool_name, tool_args=tool_args or {}),
		)

	async def _safe_structure(self) -> PageStructureAnalysis | None:
		try:
			return await self.page_analyzer.analyze_page_structure()
		except Exception as e:
			self.logger.warning(f'Page structure analysis failed: {type(e).__name__}: {e}')
			return None

	async def _analyze_frame_context(self) -> FrameContext | None:
		if self.page is None:
			return None
		try:
			return FrameContext(
				available_frames=len(self.page.frames),
				current_frame=self.page.main_frame.name or 'main',
			)
		except Exception as e:
			self.logger.debug(f'Frame context unavailable: {type(e).__name__}: {e}')
			return None

	def _general_suggestions(self, error: BaseException, operation: str, structure: PageStructureAnalysis) -> list[str]:
		suggestions: list[str] = []
		if structure.modal_states.blocked_by:
			suggestions.append(f'Page has active modal - handle before performing {operation}')
		if structure.iframes.detected:
			suggestions.append('Check if target element is inside an iframe')
		if 'not found' in str(error):
			suggestions.append('Element selector might be incorrect or element not yet loaded')
			suggestions.append('Try waiting for element to be visible before interacting')
		return suggestions

	def _tool_suggestions(self, tool_name: str, error: BaseException, structure: PageStructureAnalysis | None) -> list[str]:
		message = str(error)
		suggestions: list[str] = []

		if tool_name == 'browser_click':
			if 'not enabled' in message:
				suggestions.append('Element appears to be disabled')
				suggestions.append('Wait for element to become enabled or check if it should be enabled')
			if 'not visible' in message:
				suggestions.append('Element is not visible - check CSS display/visibility properties')
		elif tool_name == 'browser_type':
			if 'not editable' in message:
				suggestions.append('Element is not editable - ensure it is an input field')
				suggestions.append('Check if element has readonly attribute')
		elif tool_name == 'browser_select_option':
			suggestions.append('Verify that the select element contains the specified option')
			suggestions.append('Check option values and text content')
		else:
			suggestions.append(f'Consider tool-specific requirements for {tool_name}')

		if structure and structure.modal_states.blocked_by:
			suggestions.append(f'Modal state blocking {tool_name} operation')
		return suggestions

	# endregion

	async def dispose(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		await asyncio.gather(self.page_analyzer.dispose(), self.error_enrichment.dispose(), return_exceptions=True)
		if self._owns_resource_manager:
			await self.resource_manager.close()
