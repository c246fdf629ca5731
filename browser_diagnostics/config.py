"""Configuration system for browser-diagnostics: lazy env vars plus the threshold registry."""

import logging
import os
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class OldConfig:
	"""Lazy-loading configuration class for environment variables."""

	@property
	def BROWSER_DIAGNOSTICS_LOGGING_LEVEL(self) -> str:
		return os.getenv('BROWSER_DIAGNOSTICS_LOGGING_LEVEL', 'info').lower()

	@property
	def BROWSER_DIAGNOSTICS_LEVEL(self) -> str:
		return os.getenv('BROWSER_DIAGNOSTICS_LEVEL', 'standard').lower()

	@property
	def BROWSER_DIAGNOSTICS_MAX_RESULTS(self) -> int:
		return int(os.getenv('BROWSER_DIAGNOSTICS_MAX_RESULTS', '10'))

	@property
	def BROWSER_DIAGNOSTICS_MAX_BATCH_SIZE(self) -> int:
		return int(os.getenv('BROWSER_DIAGNOSTICS_MAX_BATCH_SIZE', '100'))

	@property
	def BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS(self) -> float:
		value = float(os.getenv('BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS', '30000'))
		assert value > 0, 'BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS must be positive'
		return value

	@property
	def BROWSER_DIAGNOSTICS_MAX_ERROR_HISTORY(self) -> int:
		return int(os.getenv('BROWSER_DIAGNOSTICS_MAX_ERROR_HISTORY', '100'))


class FlatEnvConfig(BaseSettings):
	"""All environment variables in a flat namespace."""

	model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', case_sensitive=True, extra='allow')

	BROWSER_DIAGNOSTICS_LOGGING_LEVEL: str = Field(default='info')
	BROWSER_DIAGNOSTICS_LEVEL: str = Field(default='standard')
	BROWSER_DIAGNOSTICS_MAX_RESULTS: int = Field(default=10)
	BROWSER_DIAGNOSTICS_MAX_BATCH_SIZE: int = Field(default=100)
	BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS: float = Field(default=30_000)
	BROWSER_DIAGNOSTICS_MAX_ERROR_HISTORY: int = Field(default=100)

	# Optional overrides for the threshold registry
	BROWSER_DIAGNOSTICS_PAGE_ANALYSIS_MS: float | None = Field(default=None)
	BROWSER_DIAGNOSTICS_MAX_MEMORY_MB: float | None = Field(default=None)


class Config:
	"""Configuration proxy that re-reads environment variables on every access."""

	def __getattr__(self, name: str) -> Any:
		if name.startswith('_'):
			raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

		old_config = OldConfig()
		if hasattr(old_config, name):
			return getattr(old_config, name)

		env_config = FlatEnvConfig()
		if hasattr(env_config, name):
			return getattr(env_config, name)

		raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")


CONFIG = Config()


# region - Thresholds


class ExecutionTimeThresholds(BaseModel):
	"""Expected upper bounds for diagnostic operations, in milliseconds"""

	page_analysis: float = 1000
	element_discovery: float = 500
	resource_monitoring: float = 200
	parallel_analysis: float = 2000


class MemoryThresholds(BaseModel):
	"""Memory limits in bytes"""

	max_memory_usage: int = 100 * MB
	memory_leak_threshold: int = 50 * MB
	gc_trigger_threshold: int = 80 * MB


class DomThresholds(BaseModel):
	elements_warning: int = 1500
	elements_danger: int = 3000
	depth_warning: int = 15
	depth_danger: int = 20
	large_subtree_threshold: int = 500


class InteractionThresholds(BaseModel):
	clickable_high: int = 100
	form_elements: int = 50


class LayoutThresholds(BaseModel):
	high_z_index_threshold: int = 1000
	excessive_z_index_threshold: int = 9999


class DiagnosticThresholds(BaseModel):
	"""All thresholds used for severity classification and page-metric warnings.

	Values are validated on construction: every threshold must be positive and each
	warning level must sit strictly below its danger level.
	"""

	execution_time: ExecutionTimeThresholds = Field(default_factory=ExecutionTimeThresholds)
	memory: MemoryThresholds = Field(default_factory=MemoryThresholds)
	dom: DomThresholds = Field(default_factory=DomThresholds)
	interaction: InteractionThresholds = Field(default_factory=InteractionThresholds)
	layout: LayoutThresholds = Field(default_factory=LayoutThresholds)

	@model_validator(mode='after')
	def validate_thresholds(self) -> Self:
		errors: list[str] = []
		for section_name in ('execution_time', 'memory', 'dom', 'interaction', 'layout'):
			section: BaseModel = getattr(self, section_name)
			for field_name, value in section.model_dump().items():
				if value <= 0:
					errors.append(f'{section_name}.{field_name} must be positive')

		if self.dom.elements_danger <= self.dom.elements_warning:
			errors.append('dom.elements_danger must be greater than dom.elements_warning')
		if self.dom.depth_danger <= self.dom.depth_warning:
			errors.append('dom.depth_danger must be greater than dom.depth_warning')
		if self.layout.excessive_z_index_threshold <= self.layout.high_z_index_threshold:
			errors.append('layout.excessive_z_index_threshold must be greater than layout.high_z_index_threshold')

		if errors:
			raise ValueError('Invalid diagnostic thresholds: ' + '; '.join(errors))
		return self

	def merged_with(self, overrides: dict[str, dict[str, Any]]) -> 'DiagnosticThresholds':
		"""Return a new validated instance with the given section overrides applied."""
		data = self.model_dump()
		for section, values in overrides.items():
			if section not in data:
				raise ValueError(f'Unknown threshold section: {section}')
			data[section].update(values)
		return DiagnosticThresholds.model_validate(data)


def _thresholds_from_env() -> DiagnosticThresholds:
	env_config = FlatEnvConfig()
	thresholds = DiagnosticThresholds()
	overrides: dict[str, dict[str, Any]] = {}
	if env_config.BROWSER_DIAGNOSTICS_PAGE_ANALYSIS_MS is not None:
		overrides['execution_time'] = {'page_analysis': env_config.BROWSER_DIAGNOSTICS_PAGE_ANALYSIS_MS}
	if env_config.BROWSER_DIAGNOSTICS_MAX_MEMORY_MB is not None:
		overrides['memory'] = {'max_memory_usage': int(env_config.BROWSER_DIAGNOSTICS_MAX_MEMORY_MB * MB)}
	return thresholds.merged_with(overrides) if overrides else thresholds


_current_thresholds: DiagnosticThresholds | None = None


def get_thresholds() -> DiagnosticThresholds:
	"""Get the process default thresholds, loading env overrides on first use."""
	global _current_thresholds
	if _current_thresholds is None:
		_current_thresholds = _thresholds_from_env()
	return _current_thresholds


def set_thresholds(overrides: dict[str, dict[str, Any]]) -> DiagnosticThresholds:
	"""Apply overrides on top of the current defaults; raises ValueError and keeps the old values if invalid."""
	global _current_thresholds
	_current_thresholds = get_thresholds().merged_with(overrides)
	logger.debug(f'Diagnostic thresholds updated: {overrides}')
	return _current_thresholds


def reset_thresholds() -> None:
	global _current_thresholds
	_current_thresholds = None


# endregion
