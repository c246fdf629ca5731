from browser_diagnostics.analyzer.frames import FrameMetadata, FrameReferenceManager
from browser_diagnostics.analyzer.parallel import ParallelPageAnalyzer
from browser_diagnostics.analyzer.service import PageAnalyzer
from browser_diagnostics.analyzer.views import (
	ParallelAnalysisResult,
	ParallelRecommendation,
	PageStructureAnalysis,
	PerformanceMetrics,
	PerformanceWarning,
)

__all__ = [
	'PageAnalyzer',
	'ParallelPageAnalyzer',
	'FrameReferenceManager',
	'FrameMetadata',
	'PageStructureAnalysis',
	'PerformanceMetrics',
	'PerformanceWarning',
	'ParallelAnalysisResult',
	'ParallelRecommendation',
]
