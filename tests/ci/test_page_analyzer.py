"""
Tests for PageAnalyzer structure analysis, performance metrics and the parallel analysis advice.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from browser_diagnostics.analyzer import PageAnalyzer
from browser_diagnostics.config import DiagnosticThresholds
from browser_diagnostics.exceptions import PageUnavailableError
from tests.ci.mocks import create_mock_page

STRUCTURE_HTML = """
<div class="modal" role="dialog">Please confirm</div>
<button>Ok</button>
<button></button>
<iframe srcdoc="<p>inner</p><p>content</p>"></iframe>
"""


def make_iframe(src: str, frame=None):
	iframe = AsyncMock()
	iframe.get_attribute.return_value = src
	iframe.content_frame.return_value = frame
	return iframe


def make_frame(evaluate_error: Exception | None = None):
	frame = MagicMock()
	frame.url = 'https://other.example/embed'
	frame.name = ''
	frame.is_detached.return_value = False
	frame.evaluate = AsyncMock(side_effect=evaluate_error, return_value=12)
	return frame


class TestPageStructure:
	@pytest.mark.asyncio
	async def test_structure_of_real_page(self, page, resource_manager):
		await page.set_content(STRUCTURE_HTML)
		analyzer = PageAnalyzer(page, resource_manager=resource_manager)
		before = resource_manager.get_active_count()

		structure = await analyzer.analyze_page_structure()

		assert structure.iframes.detected is True
		assert structure.iframes.count == 1
		assert len(structure.iframes.accessible) == 1
		assert structure.iframes.accessible[0].src == 'about:blank'
		assert structure.iframes.inaccessible == []

		assert structure.modal_states.has_dialog is True
		assert structure.modal_states.blocked_by == ['dialog']

		assert structure.elements.total_interactable >= 3
		assert structure.elements.missing_aria == 1

		# iframe handles are released as soon as they have been inspected
		assert resource_manager.get_active_count() == before

		frame_stats = analyzer.get_frame_stats()
		assert frame_stats.frame_stats.active_count == 1
		assert frame_stats.frame_stats.average_element_count > 0

		await analyzer.dispose()
		assert analyzer.get_frame_stats().is_disposed is True

	@pytest.mark.asyncio
	async def test_dump_uses_camel_case_keys(self, page):
		await page.set_content('<p>plain</p>')
		analyzer = PageAnalyzer(page)

		dumped = (await analyzer.analyze_page_structure()).model_dump(by_alias=True)

		assert set(dumped) == {'iframes', 'modalStates', 'elements'}
		assert set(dumped['modalStates']) == {'hasDialog', 'hasFileChooser', 'blockedBy'}
		assert set(dumped['elements']) == {'totalVisible', 'totalInteractable', 'missingAria'}

	@pytest.mark.asyncio
	async def test_dialog_and_file_chooser_block_the_page(self):
		page = create_mock_page(modal_state={'hasDialog': True, 'hasFileChooser': True})

		structure = await PageAnalyzer(page).analyze_page_structure()

		assert structure.modal_states.blocked_by == ['dialog', 'fileChooser']

	@pytest.mark.asyncio
	async def test_iframe_without_content_frame(self):
		page = create_mock_page(iframes=[make_iframe('https://ads.example/slot')])

		structure = await PageAnalyzer(page).analyze_page_structure()

		assert structure.iframes.count == 1
		assert structure.iframes.accessible == []
		assert structure.iframes.inaccessible[0].src == 'https://ads.example/slot'
		assert structure.iframes.inaccessible[0].reason == 'Content frame not available'

	@pytest.mark.asyncio
	async def test_iframe_with_blocked_content(self, resource_manager):
		frame = make_frame(evaluate_error=RuntimeError('cross-origin'))
		page = create_mock_page(iframes=[make_iframe('https://other.example/embed', frame)])

		structure = await PageAnalyzer(page, resource_manager=resource_manager).analyze_page_structure()

		assert structure.iframes.inaccessible[0].reason == 'Frame content not accessible - cross-origin or blocked'
		assert resource_manager.get_active_count() == 0

	@pytest.mark.asyncio
	async def test_modal_state_failure_defaults_to_unblocked(self):
		page = create_mock_page()
		original = page.evaluate.side_effect

		async def evaluate(expression, arg=None):
			if 'modal' in expression:
				raise RuntimeError('page is navigating')
			return await original(expression, arg)

		page.evaluate.side_effect = evaluate

		structure = await PageAnalyzer(page).analyze_page_structure()

		assert structure.modal_states.has_dialog is False
		assert structure.modal_states.blocked_by == []

	@pytest.mark.asyncio
	async def test_missing_page_raises(self):
		with pytest.raises(PageUnavailableError):
			await PageAnalyzer(None).analyze_page_structure()


class TestPerformanceMetrics:
	@pytest.mark.asyncio
	async def test_dom_complexity_warning_uses_thresholds(self, page):
		await page.set_content('<div><div><div>deep</div></div></div>')
		thresholds = DiagnosticThresholds().merged_with({'dom': {'elements_warning': 5}})

		metrics = await PageAnalyzer(page, thresholds=thresholds).analyze_performance_metrics()

		total = metrics.dom_metrics.total_elements
		assert total >= 6
		assert metrics.error_count == 0
		assert metrics.success_rate == 1.0
		messages = [warning.message for warning in metrics.warnings]
		assert f'High DOM complexity: {total} elements (threshold: 5)' in messages

	@pytest.mark.asyncio
	async def test_layout_and_resource_warnings(self, page):
		images = ''.join('<img alt="">' for _ in range(21))
		await page.set_content(f'<div id="top" style="position: fixed; z-index: 10000">banner</div>{images}')

		metrics = await PageAnalyzer(page).analyze_performance_metrics()

		assert metrics.resource_metrics.image_count == 21
		assert metrics.layout_metrics.fixed_elements[0].selector == '#top'
		assert metrics.layout_metrics.high_z_index_elements[0].z_index == 10000
		warnings = {warning.type: warning for warning in metrics.warnings}
		assert warnings['layout_issue'].message == 'Elements with excessive z-index values detected (>=9999)'
		assert warnings['resource_heavy'].message == 'High number of images: 21 (may impact loading performance)'

	@pytest.mark.asyncio
	async def test_quiet_page_has_no_warnings(self, page):
		await page.set_content('<main><h1>Title</h1><p>Body</p></main>')

		metrics = await PageAnalyzer(page).analyze_performance_metrics()

		assert metrics.warnings == []
		assert metrics.memory_usage > 0

	@pytest.mark.asyncio
	async def test_failure_returns_fallback_metrics(self):
		page = create_mock_page(performance_data=RuntimeError('boom'))

		metrics = await PageAnalyzer(page).analyze_performance_metrics()

		assert metrics.error_count == 1
		assert metrics.success_rate == 0
		assert len(metrics.warnings) == 1
		assert metrics.warnings[0].level == 'danger'
		assert metrics.warnings[0].message == 'Performance analysis failed: boom'


class TestParallelRecommendation:
	@pytest.mark.asyncio
	async def test_low_complexity(self):
		page = create_mock_page(complexity={'elementCount': 50, 'iframeCount': 0, 'formElements': 2})

		recommendation = await PageAnalyzer(page).should_use_parallel_analysis()

		assert recommendation.recommended is False
		assert recommendation.reason == 'Low complexity page - sequential analysis sufficient'

	@pytest.mark.asyncio
	async def test_moderate_complexity(self):
		page = create_mock_page(complexity={'elementCount': 950, 'iframeCount': 1, 'formElements': 0})

		recommendation = await PageAnalyzer(page).should_use_parallel_analysis()

		assert recommendation.recommended is True
		assert recommendation.reason == 'Moderate complexity - parallel analysis will provide better resource monitoring'
		assert recommendation.estimated_benefit == 'Expected 20-40% performance improvement'

	@pytest.mark.asyncio
	async def test_high_complexity(self):
		page = create_mock_page(complexity={'elementCount': 2500, 'iframeCount': 1, 'formElements': 3})

		recommendation = await PageAnalyzer(page).should_use_parallel_analysis()

		assert recommendation.recommended is True
		assert recommendation.reason == 'High page complexity detected (elements: 2500, iframes: 1)'

	@pytest.mark.asyncio
	async def test_evaluation_failure_recommends_parallel(self):
		page = AsyncMock()
		page.evaluate.side_effect = RuntimeError('context destroyed')

		recommendation = await PageAnalyzer(page).should_use_parallel_analysis()

		assert recommendation.recommended is True
		assert recommendation.reason == 'Unable to assess complexity - using parallel analysis as fallback'


class TestEnhancedDiagnostics:
	@pytest.mark.asyncio
	async def test_enhanced_diagnostics_on_real_page(self, page):
		await page.set_content(STRUCTURE_HTML)
		analyzer = PageAnalyzer(page)

		diagnostics = await analyzer.get_enhanced_diagnostics()

		result = diagnostics.parallel_analysis
		assert result.succeeded
		assert result.structure_analysis is not None
		assert result.performance_metrics is not None
		assert {step.step for step in result.resource_usage.analysis_steps} == {'structure-analysis', 'performance-metrics'}
		assert diagnostics.frame_stats.frame_stats.active_count == 1
		assert diagnostics.timestamp > 0

		await analyzer.dispose()
		assert analyzer.cleanup_frames() == 0


class TestServedPages:
	"""Pages loaded over HTTP so iframes have real URLs"""

	@pytest.mark.asyncio
	async def test_iframe_with_src_is_accessible(self, page, httpserver, resource_manager):
		httpserver.expect_request('/embed').respond_with_data(
			'<html><body><p>embedded</p></body></html>', content_type='text/html'
		)
		httpserver.expect_request('/').respond_with_data(
			f'<html><body><h1>Host</h1><iframe src="{httpserver.url_for("/embed")}"></iframe></body></html>',
			content_type='text/html',
		)
		await page.goto(httpserver.url_for('/'))
		analyzer = PageAnalyzer(page, resource_manager=resource_manager)

		structure = await analyzer.analyze_page_structure()

		assert structure.iframes.count == 1
		assert structure.iframes.accessible[0].src == httpserver.url_for('/embed')
		assert resource_manager.get_active_count() == 0

		issues = analyzer.get_frame_stats().performance_issues
		assert issues.large_frames == []
		assert issues.old_frames == []
		await analyzer.dispose()
