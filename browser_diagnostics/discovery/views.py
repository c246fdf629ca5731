from pydantic import BaseModel, ConfigDict, Field

from browser_diagnostics.resources.handle import SmartHandle


class SearchCriteria(BaseModel):
	"""What the caller was looking for when the original selector failed"""

	text: str | None = None
	role: str | None = None
	tag_name: str | None = None
	attributes: dict[str, str] | None = None

	def is_empty(self) -> bool:
		return not (self.text or self.role or self.tag_name or self.attributes)


class AlternativeElement(BaseModel):
	"""A candidate replacement for a selector that matched nothing.

	The caller owns `element` and must dispose it (or let the ResourceManager sweep it).
	"""

	model_config = ConfigDict(arbitrary_types_allowed=True)

	selector: str
	confidence: float = Field(ge=0, le=1)
	reason: str
	element: SmartHandle | None = Field(default=None, exclude=True)
	element_id: str | None = None


# implicit ARIA roles by tag selector
IMPLICIT_ROLE_SELECTORS: dict[str, list[str]] = {
	'button': ['button', 'input[type="button"]', 'input[type="submit"]'],
	'textbox': ['input[type="text"]', 'input[type="email"]', 'textarea'],
	'link': ['a[href]'],
	'checkbox': ['input[type="checkbox"]'],
	'radio': ['input[type="radio"]'],
}

TEXT_MATCH_THRESHOLD = 0.3
ATTRIBUTE_MATCH_CONFIDENCE = 0.9
ROLE_MATCH_CONFIDENCE = 0.7
IMPLICIT_ROLE_MATCH_CONFIDENCE = 0.6
TAG_MATCH_CONFIDENCE = 0.5
