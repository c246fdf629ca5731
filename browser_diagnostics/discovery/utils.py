def levenshtein_distance(a: str, b: str) -> int:
	"""Classic edit distance (insert, delete, substitute all cost 1)."""
	if not a:
		return len(b)
	if not b:
		return len(a)

	previous = list(range(len(b) + 1))
	for i, char_a in enumerate(a, start=1):
		current = [i]
		for j, char_b in enumerate(b, start=1):
			cost = 0 if char_a == char_b else 1
			current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
		previous = current
	return previous[-1]


def calculate_text_similarity(target: str, candidate: str) -> float:
	"""Case-insensitive similarity in [0, 1].

	1.0 for equal strings, 0.8 when the candidate contains the target, 0.6 when
	the target contains the candidate, otherwise 1 - distance / longer length.
	"""
	target = target.lower().strip()
	candidate = candidate.lower().strip()

	if target == candidate:
		return 1.0
	if target in candidate:
		return 0.8
	if candidate in target:
		return 0.6

	max_len = max(len(target), len(candidate))
	return 1 - levenshtein_distance(target, candidate) / max_len
