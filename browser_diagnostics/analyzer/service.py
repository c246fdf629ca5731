import asyncio
import logging
from importlib import resources
from typing import TYPE_CHECKING

import psutil

from browser_diagnostics.analyzer.frames import FrameReferenceManager
from browser_diagnostics.analyzer.views import (
	AccessibleFrame,
	DomMetrics,
	ElementStats,
	EnhancedDiagnostics,
	FrameStats,
	IframeAnalysis,
	InaccessibleFrame,
	InteractionMetrics,
	LayoutMetrics,
	ModalStates,
	PageStructureAnalysis,
	ParallelAnalysisResult,
	ParallelRecommendation,
	PerformanceMetrics,
	PerformanceWarning,
	ResourceMetrics,
)
from browser_diagnostics.config import DiagnosticThresholds, get_thresholds
from browser_diagnostics.exceptions import PageUnavailableError
from browser_diagnostics.resources.service import ResourceManager, safe_dispose
from browser_diagnostics.utils import now_ms, time_execution_async

if TYPE_CHECKING:
	from browser_diagnostics.types import ElementHandle, Frame, Page

logger = logging.getLogger(__name__)

FRAME_ACCESS_TIMEOUT = 1.0  # seconds
IMAGE_COUNT_WARNING = 20

MODAL_STATE_JS = """() => {
	const modals = document.querySelectorAll('[role="dialog"], .modal, .dialog, .popup');
	const overlays = document.querySelectorAll('.overlay, .modal-backdrop, .dialog-backdrop');
	const hasDialog = modals.length > 0 || overlays.length > 0;
	const hasFileChooser = Array.from(document.querySelectorAll('input[type="file"]')).some((input) => {
		const style = window.getComputedStyle(input);
		return style.display !== 'none' && style.visibility !== 'hidden';
	});
	return { hasDialog, hasFileChooser };
}"""

ELEMENT_STATS_JS = """() => {
	let totalVisible = 0;
	let totalInteractable = 0;
	let missingAria = 0;
	for (const element of document.querySelectorAll('*')) {
		const style = window.getComputedStyle(element);
		if (style.display === 'none' || style.visibility === 'hidden') {
			continue;
		}
		totalVisible++;
		const tagName = element.tagName.toLowerCase();
		const interactable =
			['button', 'input', 'select', 'textarea', 'a'].includes(tagName) ||
			element.hasAttribute('onclick') ||
			element.hasAttribute('role');
		if (!interactable) {
			continue;
		}
		totalInteractable++;
		const labelled =
			element.hasAttribute('aria-label') ||
			element.hasAttribute('aria-labelledby') ||
			(element.textContent || '').trim();
		if (!labelled) {
			missingAria++;
		}
	}
	return { totalVisible, totalInteractable, missingAria };
}"""

COMPLEXITY_JS = """() => ({
	elementCount: document.querySelectorAll('*').length,
	iframeCount: document.querySelectorAll('iframe').length,
	formElements: document.querySelectorAll('input, button, select, textarea').length,
})"""


class PageAnalyzer:
	"""Structure and performance analysis of the current page.

	Iframe element handles are disposed as soon as they have been inspected
	(tracked through the ResourceManager when one is given); the frames behind
	them are remembered in a FrameReferenceManager.
	"""

	def __init__(
		self,
		page: 'Page | None',
		resource_manager: ResourceManager | None = None,
		thresholds: DiagnosticThresholds | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.resource_manager = resource_manager
		self.thresholds = thresholds or get_thresholds()
		self.logger = logger or logging.getLogger(__name__)
		self.frame_manager = FrameReferenceManager()
		self._disposed = False
		self.js_code = resources.files('browser_diagnostics.analyzer').joinpath('performanceMetrics.js').read_text()

	def _get_page(self) -> 'Page':
		if self._disposed:
			raise PageUnavailableError('PageAnalyzer has been disposed')
		if self.page is None:
			raise PageUnavailableError('Page is not available')
		return self.page

	# region - Structure

	@time_execution_async('--analyze_page_structure')
	async def analyze_page_structure(self) -> PageStructureAnalysis:
		self._get_page()
		iframes, modal_states, elements = await asyncio.gather(
			self._analyze_iframes(),
			self._analyze_modal_states(),
			self._analyze_elements(),
		)
		return PageStructureAnalysis(iframes=iframes, modal_states=modal_states, elements=elements)

	async def _analyze_iframes(self) -> IframeAnalysis:
		page = self._get_page()
		iframes = await page.query_selector_all('iframe')
		analysis = IframeAnalysis(detected=bool(iframes), count=len(iframes))

		handles = [self.resource_manager.create_smart_handle(iframe) for iframe in iframes] if self.resource_manager else iframes
		try:
			# one at a time to avoid flooding the browser with frame round-trips
			for handle in handles:
				await self._inspect_iframe(handle, analysis)
		finally:
			for handle in handles:
				await safe_dispose(handle, 'iframe ElementHandle', 'analyze_iframes')

		self.frame_manager.cleanup_detached_frames()
		return analysis

	async def _inspect_iframe(self, iframe: 'ElementHandle', analysis: IframeAnalysis) -> None:
		src = 'about:blank'
		try:
			src = await iframe.get_attribute('src') or 'about:blank'
			frame = await iframe.content_frame()
			if frame is None:
				analysis.inaccessible.append(InaccessibleFrame(src=src, reason='Content frame not available'))
				return

			self.frame_manager.track_frame(frame)
			try:
				await asyncio.wait_for(frame.evaluate('() => document.readyState'), timeout=FRAME_ACCESS_TIMEOUT)
			except Exception as e:
				self.logger.debug(f'Frame access failed for {src}: {type(e).__name__}: {e}')
				analysis.inaccessible.append(
					InaccessibleFrame(src=src, reason='Frame content not accessible - cross-origin or blocked')
				)
				return

			analysis.accessible.append(AccessibleFrame(src=src, accessible=True))
			await self._update_frame_metadata(frame)
		except Exception as e:
			analysis.inaccessible.append(InaccessibleFrame(src=src, reason=str(e) or 'Access denied'))

	async def _update_frame_metadata(self, frame: 'Frame') -> None:
		try:
			element_count = await frame.evaluate("() => document.querySelectorAll('*').length")
			self.frame_manager.update_element_count(frame, element_count)
		except Exception as e:
			self.logger.warning(f'Failed to count frame elements: {type(e).__name__}: {e}')

	async def _analyze_modal_states(self) -> ModalStates:
		page = self._get_page()
		try:
			state = await page.evaluate(MODAL_STATE_JS)
		except Exception as e:
			# page may still be loading; treat as unblocked
			self.logger.warning(f'Failed to evaluate modal states: {type(e).__name__}: {e}')
			return ModalStates()

		blocked_by = []
		if state['hasDialog']:
			blocked_by.append('dialog')
		if state['hasFileChooser']:
			blocked_by.append('fileChooser')
		return ModalStates(has_dialog=state['hasDialog'], has_file_chooser=state['hasFileChooser'], blocked_by=blocked_by)

	async def _analyze_elements(self) -> ElementStats:
		page = self._get_page()
		return ElementStats.model_validate(await page.evaluate(ELEMENT_STATS_JS))

	# endregion

	# region - Performance

	@time_execution_async('--analyze_performance_metrics')
	async def analyze_performance_metrics(self) -> PerformanceMetrics:
		start_time = now_ms()
		page = self._get_page()

		try:
			data = await page.evaluate(
				self.js_code,
				{
					'largeSubtreeThreshold': self.thresholds.dom.large_subtree_threshold,
					'highZIndexThreshold': self.thresholds.layout.high_z_index_threshold,
					'excessiveZIndexThreshold': self.thresholds.layout.excessive_z_index_threshold,
				},
			)
			dom = DomMetrics.model_validate(data['dom'])
			interaction = InteractionMetrics.model_validate(data['interaction'])
			resource = ResourceMetrics.model_validate(data['resource'])
			layout = LayoutMetrics.model_validate(data['layout'])
		except Exception as e:
			self.logger.warning(f'Performance analysis failed: {type(e).__name__}: {e}')
			return PerformanceMetrics(
				execution_time=now_ms() - start_time,
				memory_usage=psutil.Process().memory_info().rss,
				error_count=1,
				success_rate=0.0,
				warnings=[
					PerformanceWarning(type='dom_complexity', level='danger', message=f'Performance analysis failed: {e}')
				],
			)

		return PerformanceMetrics(
			execution_time=now_ms() - start_time,
			memory_usage=psutil.Process().memory_info().rss,
			dom_metrics=dom,
			interaction_metrics=interaction,
			resource_metrics=resource,
			layout_metrics=layout,
			warnings=self._build_warnings(dom, interaction, resource, layout),
		)

	def _build_warnings(
		self,
		dom: DomMetrics,
		interaction: InteractionMetrics,
		resource: ResourceMetrics,
		layout: LayoutMetrics,
	) -> list[PerformanceWarning]:
		t = self.thresholds
		warnings: list[PerformanceWarning] = []

		if dom.total_elements >= t.dom.elements_danger:
			warnings.append(
				PerformanceWarning(
					type='dom_complexity',
					level='danger',
					message=f'Very high DOM complexity: {dom.total_elements} elements (threshold: {t.dom.elements_danger})',
				)
			)
		elif dom.total_elements >= t.dom.elements_warning:
			warnings.append(
				PerformanceWarning(
					type='dom_complexity',
					level='warning',
					message=f'High DOM complexity: {dom.total_elements} elements (threshold: {t.dom.elements_warning})',
				)
			)

		if dom.max_depth >= t.dom.depth_danger:
			warnings.append(
				PerformanceWarning(
					type='dom_complexity',
					level='danger',
					message=f'Very deep DOM structure: {dom.max_depth} levels (threshold: {t.dom.depth_danger})',
				)
			)
		elif dom.max_depth >= t.dom.depth_warning:
			warnings.append(
				PerformanceWarning(
					type='dom_complexity',
					level='warning',
					message=f'Deep DOM structure: {dom.max_depth} levels (threshold: {t.dom.depth_warning})',
				)
			)

		if interaction.clickable_elements >= t.interaction.clickable_high:
			warnings.append(
				PerformanceWarning(
					type='interaction_overload',
					level='warning',
					message=f'High number of clickable elements: {interaction.clickable_elements} (threshold: {t.interaction.clickable_high})',
				)
			)

		if any(el.z_index >= t.layout.excessive_z_index_threshold for el in layout.high_z_index_elements):
			warnings.append(
				PerformanceWarning(
					type='layout_issue',
					level='warning',
					message=f'Elements with excessive z-index values detected (>={t.layout.excessive_z_index_threshold})',
				)
			)

		if resource.image_count > IMAGE_COUNT_WARNING:
			warnings.append(
				PerformanceWarning(
					type='resource_heavy',
					level='warning',
					message=f'High number of images: {resource.image_count} (may impact loading performance)',
				)
			)

		return warnings

	async def should_use_parallel_analysis(self) -> ParallelRecommendation:
		"""Advisory only: estimate whether parallel analysis is worth it for this page."""
		page = self._get_page()
		try:
			counts = await page.evaluate(COMPLEXITY_JS)
		except Exception as e:
			self.logger.warning(f'Complexity evaluation failed: {type(e).__name__}: {e}')
			return ParallelRecommendation(
				recommended=True,
				reason='Unable to assess complexity - using parallel analysis as fallback',
				estimated_benefit='Resource monitoring and error handling benefits',
			)

		element_count = counts['elementCount']
		iframe_count = counts['iframeCount']
		complexity = element_count + iframe_count * 100 + counts['formElements'] * 10

		if complexity > 2000:
			return ParallelRecommendation(
				recommended=True,
				reason=f'High page complexity detected (elements: {element_count}, iframes: {iframe_count})',
				estimated_benefit='Expected 40-60% performance improvement',
			)
		if complexity > 1000:
			return ParallelRecommendation(
				recommended=True,
				reason='Moderate complexity - parallel analysis will provide better resource monitoring',
				estimated_benefit='Expected 20-40% performance improvement',
			)
		return ParallelRecommendation(
			recommended=False,
			reason='Low complexity page - sequential analysis sufficient',
			estimated_benefit='Minimal performance difference expected',
		)

	# endregion

	# region - Parallel analysis and frames

	async def run_parallel_analysis(self) -> ParallelAnalysisResult:
		from browser_diagnostics.analyzer.parallel import ParallelPageAnalyzer

		self._get_page()
		parallel_analyzer = ParallelPageAnalyzer(self.page, page_analyzer=self, logger=self.logger)
		try:
			return await parallel_analyzer.run_parallel_analysis()
		finally:
			await parallel_analyzer.dispose()

	async def get_enhanced_diagnostics(self) -> EnhancedDiagnostics:
		parallel_analysis = await self.run_parallel_analysis()
		return EnhancedDiagnostics(
			parallel_analysis=parallel_analysis,
			frame_stats=self.get_frame_stats(),
			timestamp=now_ms(),
		)

	def get_frame_stats(self) -> FrameStats:
		if self._disposed:
			return FrameStats(is_disposed=True)
		return FrameStats(
			frame_stats=self.frame_manager.get_statistics(),
			performance_issues=self.frame_manager.find_performance_issues(),
		)

	def cleanup_frames(self) -> int:
		if self._disposed:
			return 0
		return self.frame_manager.cleanup_detached_frames()

	# endregion

	async def dispose(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		try:
			self.frame_manager.dispose()
		except Exception as e:
			self.logger.warning(f'Failed to dispose frame manager: {type(e).__name__}: {e}')
