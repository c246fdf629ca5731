import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from browser_diagnostics.analyzer.service import PageAnalyzer
from browser_diagnostics.analyzer.views import AnalysisError, ParallelAnalysisResult, ParallelResourceUsage
from browser_diagnostics.exceptions import MonitoringError
from browser_diagnostics.monitor.service import ResourceUsageMonitor
from browser_diagnostics.monitor.views import AnalysisStep, MemorySnapshot
from browser_diagnostics.utils import now_ms, time_execution_async

if TYPE_CHECKING:
	from browser_diagnostics.types import Page

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ParallelPageAnalyzer:
	"""Runs structure and performance analysis as concurrent tasks, each timed and memory-sampled.

	One step failing never cancels the other: the result carries whichever
	analyses succeeded plus one {step, error} entry per failure.
	"""

	def __init__(
		self,
		page: 'Page | None',
		page_analyzer: PageAnalyzer | None = None,
		monitor: ResourceUsageMonitor | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.logger = logger or logging.getLogger(__name__)
		self.page_analyzer = page_analyzer or PageAnalyzer(page, logger=self.logger)
		self._owns_page_analyzer = page_analyzer is None
		self.monitor = monitor or ResourceUsageMonitor(logger=self.logger)
		self._owns_monitor = monitor is None

	@time_execution_async('--run_parallel_analysis')
	async def run_parallel_analysis(self) -> ParallelAnalysisResult:
		start_time = now_ms()
		self.monitor.start_monitoring('parallel-analysis')

		step_names = ('structure-analysis', 'performance-metrics')
		results = await asyncio.gather(
			self._execute_with_monitoring(step_names[0], self.page_analyzer.analyze_page_structure),
			self._execute_with_monitoring(step_names[1], self.page_analyzer.analyze_performance_metrics),
			return_exceptions=True,
		)

		result_data: dict[str, object] = {}
		analysis_steps: list[AnalysisStep] = []
		errors: list[AnalysisError] = []
		for step_name, outcome in zip(step_names, results):
			if isinstance(outcome, BaseException):
				self.logger.debug(f'Analysis step {step_name} failed: {type(outcome).__name__}: {outcome}')
				errors.append(AnalysisError(step=step_name, error=str(outcome) or type(outcome).__name__))
				continue
			data, step = outcome
			result_data[step_name] = data
			analysis_steps.append(step)

		self.monitor.stop_monitoring('parallel-analysis')

		return ParallelAnalysisResult(
			structure_analysis=result_data.get('structure-analysis'),
			performance_metrics=result_data.get('performance-metrics'),
			resource_usage=ParallelResourceUsage(
				memory_usage=self.monitor.get_current_memory_usage(),
				cpu_time=0,
				peak_memory=self.monitor.get_peak_memory_usage(),
				analysis_steps=analysis_steps,
			),
			execution_time=now_ms() - start_time,
			errors=errors,
		)

	async def _execute_with_monitoring(self, step_name: str, analysis: Callable[[], Awaitable[T]]) -> tuple[T, AnalysisStep]:
		start_memory = self.monitor.get_current_memory_usage()
		self.monitor.start_monitoring(step_name)
		try:
			data = await analysis()
		except Exception:
			try:
				self.monitor.stop_monitoring(step_name)
			except MonitoringError:
				pass
			raise

		usage = self.monitor.stop_monitoring(step_name)
		end_memory = self.monitor.get_current_memory_usage()
		return data, AnalysisStep(step=step_name, duration=usage.duration, memory_delta=end_memory.used - start_memory.used)

	def get_current_resource_usage(self) -> MemorySnapshot:
		return self.monitor.get_current_memory_usage()

	def get_operation_timeline(self):
		return self.monitor.get_operation_timeline()

	def clear_monitoring_history(self) -> None:
		self.monitor.clear_timeline()

	async def dispose(self) -> None:
		if self._owns_page_analyzer:
			await self.page_analyzer.dispose()
		if self._owns_monitor:
			self.monitor.dispose()
