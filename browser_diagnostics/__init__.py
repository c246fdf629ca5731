from browser_diagnostics.logging_config import setup_logging

logger = setup_logging()

from browser_diagnostics.analyzer import PageAnalyzer, PageStructureAnalysis, ParallelAnalysisResult, ParallelPageAnalyzer
from browser_diagnostics.config import CONFIG, DiagnosticThresholds, get_thresholds, reset_thresholds, set_thresholds
from browser_diagnostics.context import DiagnosticsContext
from browser_diagnostics.discovery import AlternativeElement, ElementDiscovery, SearchCriteria
from browser_diagnostics.errors import DiagnosticError, EnhancedErrorHandler, EnrichedError, ErrorEnrichment
from browser_diagnostics.exceptions import DiagnosticsError, HandleDisposedError, MonitoringError, PageUnavailableError
from browser_diagnostics.level import DiagnosticConfig, DiagnosticLevel, DiagnosticLevelManager
from browser_diagnostics.monitor import ResourceUsageMonitor
from browser_diagnostics.resources import ResourceManager, SmartHandle, SmartHandleBatch

__all__ = [
	'CONFIG',
	'DiagnosticsContext',
	'ResourceManager',
	'SmartHandle',
	'SmartHandleBatch',
	'ResourceUsageMonitor',
	'ElementDiscovery',
	'SearchCriteria',
	'AlternativeElement',
	'PageAnalyzer',
	'ParallelPageAnalyzer',
	'PageStructureAnalysis',
	'ParallelAnalysisResult',
	'DiagnosticError',
	'EnrichedError',
	'ErrorEnrichment',
	'EnhancedErrorHandler',
	'DiagnosticLevel',
	'DiagnosticConfig',
	'DiagnosticLevelManager',
	'DiagnosticThresholds',
	'get_thresholds',
	'set_thresholds',
	'reset_thresholds',
	'DiagnosticsError',
	'PageUnavailableError',
	'HandleDisposedError',
	'MonitoringError',
]
