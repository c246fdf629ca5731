from browser_diagnostics.errors.enrichment import ErrorEnrichment
from browser_diagnostics.errors.service import EnhancedErrorHandler
from browser_diagnostics.errors.suggestions import generate_suggestions
from browser_diagnostics.errors.views import (
	BatchFailureContext,
	DiagnosticComponent,
	DiagnosticError,
	EnrichedError,
	ErrorHistoryEntry,
	ErrorStatistics,
)

__all__ = [
	'DiagnosticError',
	'DiagnosticComponent',
	'EnrichedError',
	'ErrorEnrichment',
	'EnhancedErrorHandler',
	'ErrorHistoryEntry',
	'ErrorStatistics',
	'BatchFailureContext',
	'generate_suggestions',
]
