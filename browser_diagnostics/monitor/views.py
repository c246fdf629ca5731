from pydantic import BaseModel, Field


class MemorySnapshot(BaseModel):
	"""Process memory at one sampling point, in bytes"""

	used: int
	rss: int
	vms: int


class TimelineEntry(BaseModel):
	operation_name: str
	start_time: float
	end_time: float | None = None  # None while the operation is still running
	duration: float = 0
	memory_usage: MemorySnapshot

	@property
	def finished(self) -> bool:
		return self.end_time is not None


class AnalysisStep(BaseModel):
	step: str
	duration: float
	memory_delta: int = 0


class ResourceUsage(BaseModel):
	operation_name: str
	duration: float
	memory_usage: MemorySnapshot
	cpu_time: float = 0  # not measurable at this layer
	peak_memory: int
	analysis_steps: list[AnalysisStep] = Field(default_factory=list)
