import itertools
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, get_args

from pydantic import BaseModel, Field

from browser_diagnostics.exceptions import DiagnosticsError
from browser_diagnostics.utils import now_ms

if TYPE_CHECKING:
	from browser_diagnostics.analyzer.views import PageStructureAnalysis
	from browser_diagnostics.discovery.views import AlternativeElement

DiagnosticComponent = Literal[
	'PageAnalyzer',
	'ElementDiscovery',
	'ResourceManager',
	'ErrorHandler',
	'ConfigManager',
	'UnifiedSystem',
	'InitializationManager',
]
DIAGNOSTIC_COMPONENTS: tuple[str, ...] = get_args(DiagnosticComponent)

PerformanceImpact = Literal['low', 'medium', 'high']

_error_ids = itertools.count(1)


def _mb(num_bytes: float) -> str:
	return f'{num_bytes / 1024 / 1024:.2f}'


class DiagnosticError(DiagnosticsError):
	"""Structured failure of a diagnostic operation, carrying remediation suggestions.

	`suggestions` is append-only: later pipeline stages (performance checks, page
	context, recurring-pattern detection) extend it in place.
	"""

	def __init__(
		self,
		message: str,
		component: DiagnosticComponent,
		operation: str,
		original_error: BaseException | None = None,
		execution_time: float | None = None,
		memory_usage: int | None = None,
		performance_impact: PerformanceImpact = 'low',
		suggestions: list[str] | None = None,
		context: dict[str, Any] | None = None,
		timestamp: float | None = None,
	):
		self.message = f'[{component}:{operation}] {message}'
		super().__init__(self.message)
		self.error_id = f'diag_{next(_error_ids)}'
		self.timestamp = timestamp if timestamp is not None else now_ms()
		self.component = component
		self.operation = operation
		self.original_error = original_error
		self.execution_time = execution_time
		self.memory_usage = memory_usage
		self.performance_impact: PerformanceImpact = performance_impact
		self.suggestions: list[str] = list(suggestions or [])
		self.context = context or {}

	@classmethod
	def from_error(
		cls,
		error: BaseException,
		component: DiagnosticComponent,
		operation: str,
		**extra: Any,
	) -> 'DiagnosticError':
		return cls(str(error) or type(error).__name__, component, operation, original_error=error, **extra)

	@classmethod
	def performance(
		cls,
		message: str,
		component: DiagnosticComponent,
		operation: str,
		execution_time: float,
		threshold: float,
	) -> 'DiagnosticError':
		if execution_time > threshold * 3:
			impact: PerformanceImpact = 'high'
		elif execution_time > threshold * 2:
			impact = 'medium'
		else:
			impact = 'low'

		return cls(
			f'Performance issue: {message} ({execution_time:.0f}ms > {threshold:.0f}ms)',
			component,
			operation,
			execution_time=execution_time,
			performance_impact=impact,
			suggestions=[
				f'Operation took longer than expected ({execution_time:.0f}ms vs {threshold:.0f}ms threshold)',
				'Consider optimizing this operation or increasing timeout thresholds',
			],
		)

	@classmethod
	def resource(
		cls,
		message: str,
		component: DiagnosticComponent,
		operation: str,
		memory_usage: int,
		memory_limit: int,
	) -> 'DiagnosticError':
		if memory_usage > memory_limit * 2:
			impact: PerformanceImpact = 'high'
		elif memory_usage > memory_limit * 1.5:
			impact = 'medium'
		else:
			impact = 'low'

		return cls(
			f'Resource issue: {message} ({_mb(memory_usage)}MB)',
			component,
			operation,
			memory_usage=memory_usage,
			performance_impact=impact,
			suggestions=[
				f'Memory usage exceeded expectations ({_mb(memory_usage)}MB vs {_mb(memory_limit)}MB limit)',
				'Consider enabling resource cleanup or reducing analysis scope',
			],
		)

	def to_json(self) -> dict[str, Any]:
		original = None
		if self.original_error is not None:
			original = {
				'name': type(self.original_error).__name__,
				'message': str(self.original_error),
				'stack': ''.join(traceback.format_exception(self.original_error)) or None,
			}
		return {
			'name': type(self).__name__,
			'error_id': self.error_id,
			'message': self.message,
			'timestamp': self.timestamp,
			'component': self.component,
			'operation': self.operation,
			'execution_time': self.execution_time,
			'memory_usage': self.memory_usage,
			'performance_impact': self.performance_impact,
			'suggestions': list(self.suggestions),
			'context': self.context,
			'original_error': original,
		}

	def __str__(self) -> str:
		parts = [self.message]
		if self.execution_time is not None:
			parts.append(f'Execution Time: {self.execution_time:.0f}ms')
		if self.memory_usage is not None:
			parts.append(f'Memory Usage: {_mb(self.memory_usage)}MB')
		if self.suggestions:
			parts.append('Suggestions:')
			parts.extend(f'  - {suggestion}' for suggestion in self.suggestions)
		return '\n'.join(parts)


@dataclass
class ErrorHistoryEntry:
	error: DiagnosticError
	timestamp: float
	component: DiagnosticComponent
	resolved: bool = False


class ErrorStatistics(BaseModel):
	total_errors: int
	errors_by_component: dict[str, int]
	errors_by_operation: dict[str, int]
	resolution_rate: float
	recent_error_rate: float


class FailedStep(BaseModel):
	step_index: int
	tool_name: str
	selector: str | None = None


class ExecutedStep(BaseModel):
	step_index: int
	tool_name: str
	success: bool


class BatchFailureContext(BaseModel):
	failed_step: FailedStep
	executed_steps: list[ExecutedStep] = Field(default_factory=list)


class FrameContext(BaseModel):
	available_frames: int
	current_frame: str


class PerformanceInfo(BaseModel):
	execution_time: float
	exceeded_threshold: bool
	threshold: float


class ToolContext(BaseModel):
	tool_name: str
	tool_args: dict[str, Any] = Field(default_factory=dict)


class EnrichedError(Exception):
	"""An error re-raised with discovery results and page diagnostics attached."""

	def __init__(
		self,
		message: str,
		original_error: BaseException | None = None,
		alternatives: 'list[AlternativeElement] | None' = None,
		page_structure: 'PageStructureAnalysis | None' = None,
		suggestions: list[str] | None = None,
		batch_context: BatchFailureContext | None = None,
		context_info: FrameContext | None = None,
		performance_info: PerformanceInfo | None = None,
		tool_context: ToolContext | None = None,
	):
		super().__init__(message)
		self.message = message
		self.original_error = original_error
		self.alternatives = alternatives or []
		self.page_structure = page_structure
		self.suggestions = list(suggestions or [])
		self.batch_context = batch_context
		self.context_info = context_info
		self.performance_info = performance_info
		self.tool_context = tool_context

	@property
	def diagnostic_info(self) -> 'PageStructureAnalysis | None':
		return self.page_structure
