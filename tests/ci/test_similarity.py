"""
Tests for the text similarity scoring used to rank text matches.
"""

import pytest

from browser_diagnostics.discovery.utils import calculate_text_similarity, levenshtein_distance


class TestLevenshteinDistance:
	@pytest.mark.parametrize(
		'a, b, expected',
		[
			('', '', 0),
			('', 'abc', 3),
			('abc', '', 3),
			('kitten', 'sitting', 3),
			('flaw', 'lawn', 2),
			('same', 'same', 0),
		],
	)
	def test_distance(self, a, b, expected):
		assert levenshtein_distance(a, b) == expected


class TestTextSimilarity:
	def test_exact_match_ignores_case_and_whitespace(self):
		assert calculate_text_similarity('Submit', '  submit ') == 1.0

	def test_candidate_contains_target(self):
		assert calculate_text_similarity('Submit', 'Submit Form') == 0.8

	def test_target_contains_candidate(self):
		assert calculate_text_similarity('Submit Form', 'Submit') == 0.6

	def test_falls_back_to_edit_distance(self):
		# kitten -> sitting is 3 edits over 7 characters
		assert calculate_text_similarity('kitten', 'sitting') == pytest.approx(1 - 3 / 7)

	def test_unrelated_text_scores_low(self):
		assert calculate_text_similarity('Submit', 'xyz') <= 0.3
