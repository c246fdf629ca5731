import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from browser_diagnostics.config import CONFIG

logger = logging.getLogger(__name__)


class DiagnosticLevel(str, Enum):
	NONE = 'none'
	BASIC = 'basic'
	STANDARD = 'standard'
	DETAILED = 'detailed'
	FULL = 'full'


class DiagnosticFeatures(BaseModel):
	"""Explicit per-feature toggles; None falls through to the level default"""

	alternative_suggestions: bool | None = None
	page_analysis: bool | None = None
	performance_tracking: bool | None = None
	iframe_detection: bool | None = None
	modal_detection: bool | None = None
	accessibility_analysis: bool | None = None


class DiagnosticLimits(BaseModel):
	max_diagnostic_time: float = 300  # ms
	max_alternatives: int | None = None


def _default_level() -> DiagnosticLevel:
	try:
		return DiagnosticLevel(CONFIG.BROWSER_DIAGNOSTICS_LEVEL)
	except ValueError:
		logger.warning(f'Unknown BROWSER_DIAGNOSTICS_LEVEL={CONFIG.BROWSER_DIAGNOSTICS_LEVEL!r}, using standard')
		return DiagnosticLevel.STANDARD


class DiagnosticConfig(BaseModel):
	level: DiagnosticLevel = Field(default_factory=_default_level)

	# top-level switches win over everything else
	enable_alternative_suggestions: bool | None = None
	enable_page_analysis: bool | None = None
	enable_performance_metrics: bool | None = None
	enable_detailed_errors: bool | None = None

	max_alternatives: int | None = None
	max_error_history: int = Field(default_factory=lambda: CONFIG.BROWSER_DIAGNOSTICS_MAX_ERROR_HISTORY, gt=0)
	features: DiagnosticFeatures | None = None
	thresholds: DiagnosticLimits = Field(default_factory=DiagnosticLimits)


_TOP_LEVEL_FLAGS = {
	'alternative_suggestions': 'enable_alternative_suggestions',
	'page_analysis': 'enable_page_analysis',
	'performance_metrics': 'enable_performance_metrics',
}

_MAX_ALTERNATIVES_BY_LEVEL = {
	DiagnosticLevel.NONE: 0,
	DiagnosticLevel.BASIC: 1,
	DiagnosticLevel.STANDARD: 5,
	DiagnosticLevel.DETAILED: 10,
	DiagnosticLevel.FULL: 10,
}


class DiagnosticLevelManager:
	"""Decides which diagnostic features run, and how much work they may do."""

	def __init__(self, config: DiagnosticConfig | dict[str, Any] | None = None):
		if isinstance(config, dict):
			config = DiagnosticConfig.model_validate(config)
		self.config = config or DiagnosticConfig()

	def should_enable_feature(self, feature: str) -> bool:
		flag_name = _TOP_LEVEL_FLAGS.get(feature)
		if flag_name:
			flag = getattr(self.config, flag_name)
			if flag is not None:
				return flag

		if self.config.features is not None:
			toggle = getattr(self.config.features, feature, None)
			if toggle is not None:
				return toggle

		level = self.config.level
		if level == DiagnosticLevel.NONE:
			return False
		if level == DiagnosticLevel.BASIC:
			return feature in ('iframe_detection', 'modal_detection')
		if level == DiagnosticLevel.STANDARD:
			return feature not in ('performance_tracking', 'accessibility_analysis')
		if level == DiagnosticLevel.DETAILED:
			return feature != 'accessibility_analysis'
		return True

	def get_max_alternatives(self) -> int:
		if self.config.max_alternatives is not None:
			return self.config.max_alternatives
		if self.config.thresholds.max_alternatives is not None:
			return self.config.thresholds.max_alternatives
		return _MAX_ALTERNATIVES_BY_LEVEL[self.config.level]

	def should_skip_diagnostics(self) -> bool:
		return self.config.level == DiagnosticLevel.NONE

	def get_max_diagnostic_time(self) -> float:
		return self.config.thresholds.max_diagnostic_time

	def get_config(self) -> DiagnosticConfig:
		return self.config.model_copy(deep=True)

	def update_config(self, partial: dict[str, Any]) -> None:
		"""Merge a partial config; nested `thresholds` are merged key by key, `features` replaced."""
		data = self.config.model_dump()
		for key, value in partial.items():
			if key == 'thresholds' and value is not None:
				data['thresholds'] = {**data['thresholds'], **value}
			else:
				data[key] = value
		self.config = DiagnosticConfig.model_validate(data)
