from browser_diagnostics.monitor.service import ResourceUsageMonitor
from browser_diagnostics.monitor.views import AnalysisStep, MemorySnapshot, ResourceUsage, TimelineEntry

__all__ = ['ResourceUsageMonitor', 'AnalysisStep', 'MemorySnapshot', 'ResourceUsage', 'TimelineEntry']
