from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browser_diagnostics.monitor.views import AnalysisStep, MemorySnapshot


class CamelModel(BaseModel):
	"""Snake-case fields that read and dump the camelCase keys produced by the page scripts"""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# region - Page structure


class AccessibleFrame(CamelModel):
	src: str
	accessible: bool = True


class InaccessibleFrame(CamelModel):
	src: str
	reason: str


class IframeAnalysis(CamelModel):
	detected: bool = False
	count: int = 0
	accessible: list[AccessibleFrame] = Field(default_factory=list)
	inaccessible: list[InaccessibleFrame] = Field(default_factory=list)


class ModalStates(CamelModel):
	has_dialog: bool = False
	has_file_chooser: bool = False
	blocked_by: list[str] = Field(default_factory=list)


class ElementStats(CamelModel):
	total_visible: int = 0
	total_interactable: int = 0
	missing_aria: int = 0


class PageStructureAnalysis(CamelModel):
	iframes: IframeAnalysis = Field(default_factory=IframeAnalysis)
	modal_states: ModalStates = Field(default_factory=ModalStates)
	elements: ElementStats = Field(default_factory=ElementStats)


# endregion

# region - Performance metrics


class LargeSubtree(CamelModel):
	selector: str
	element_count: int
	description: str


class DomMetrics(CamelModel):
	total_elements: int = 0
	max_depth: int = 0
	large_subtrees: list[LargeSubtree] = Field(default_factory=list)


class InteractionMetrics(CamelModel):
	clickable_elements: int = 0
	form_elements: int = 0
	disabled_elements: int = 0
	iframes: int = 0


class ResourceMetrics(CamelModel):
	# network numbers are not observable from the DOM and stay 0
	total_requests: int = 0
	total_size: int = 0
	load_time: float = 0
	image_count: int = 0
	estimated_image_size: str = 'Unknown'
	script_tags: int = 0
	inline_scripts: int = 0
	external_scripts: int = 0
	stylesheet_count: int = 0


class FixedElement(CamelModel):
	selector: str
	purpose: str
	z_index: int


class HighZIndexElement(CamelModel):
	selector: str
	z_index: int
	description: str


class LayoutMetrics(CamelModel):
	viewport_width: int = 0
	viewport_height: int = 0
	scroll_height: int = 0
	fixed_elements: list[FixedElement] = Field(default_factory=list)
	high_z_index_elements: list[HighZIndexElement] = Field(default_factory=list)
	overflow_hidden_elements: int = 0


class PerformanceWarning(CamelModel):
	type: Literal['dom_complexity', 'interaction_overload', 'resource_heavy', 'layout_issue']
	level: Literal['warning', 'danger']
	message: str


class PerformanceMetrics(CamelModel):
	execution_time: float
	memory_usage: int
	operation_count: int = 1
	error_count: int = 0
	success_rate: float = 1.0
	dom_metrics: DomMetrics = Field(default_factory=DomMetrics)
	interaction_metrics: InteractionMetrics = Field(default_factory=InteractionMetrics)
	resource_metrics: ResourceMetrics = Field(default_factory=ResourceMetrics)
	layout_metrics: LayoutMetrics = Field(default_factory=LayoutMetrics)
	warnings: list[PerformanceWarning] = Field(default_factory=list)


# endregion

# region - Parallel analysis


class ParallelRecommendation(CamelModel):
	recommended: bool
	reason: str
	estimated_benefit: str


class AnalysisError(CamelModel):
	step: str
	error: str


class ParallelResourceUsage(CamelModel):
	memory_usage: MemorySnapshot
	cpu_time: float = 0
	peak_memory: int
	analysis_steps: list[AnalysisStep] = Field(default_factory=list)


class ParallelAnalysisResult(CamelModel):
	structure_analysis: PageStructureAnalysis | None = None
	performance_metrics: PerformanceMetrics | None = None
	resource_usage: ParallelResourceUsage
	execution_time: float
	errors: list[AnalysisError] = Field(default_factory=list)

	@property
	def succeeded(self) -> bool:
		return not self.errors


# endregion

# region - Frames


class FrameStatistics(CamelModel):
	active_count: int = 0
	total_tracked: int = 0
	detached_count: int = 0
	average_element_count: int = 0


class LargeFrame(CamelModel):
	url: str
	element_count: int


class OldFrame(CamelModel):
	url: str
	age: float


class FramePerformanceIssues(CamelModel):
	large_frames: list[LargeFrame] = Field(default_factory=list)
	old_frames: list[OldFrame] = Field(default_factory=list)


class FrameStats(CamelModel):
	frame_stats: FrameStatistics = Field(default_factory=FrameStatistics)
	performance_issues: FramePerformanceIssues = Field(default_factory=FramePerformanceIssues)
	is_disposed: bool = False


class EnhancedDiagnostics(CamelModel):
	parallel_analysis: ParallelAnalysisResult
	frame_stats: FrameStats
	timestamp: float


# endregion
