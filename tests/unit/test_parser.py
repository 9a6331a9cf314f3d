"""
Unit tests for model response parsing
"""

import json

import pytest

from codereviewer.agents.parser import parse_review, strip_code_fences
from codereviewer.exceptions import ErrorKind, ProviderRequestFailed


class TestStripCodeFences:
    def test_plain_text_unchanged(self):
        assert strip_code_fences('{"score": 1}') == '{"score": 1}'

    def test_json_fence_removed(self):
        assert strip_code_fences('```json\n{"score": 1}\n```') == '{"score": 1}'

    def test_bare_fence_removed(self):
        assert strip_code_fences('```\n{"score": 1}\n```') == '{"score": 1}'

    def test_surrounding_whitespace(self):
        assert strip_code_fences('  \n```json\n{"a": 1}\n```  \n') == '{"a": 1}'

    def test_inner_fences_preserved(self):
        inner = '{"fix": "```py\\nx = 1\\n```"}'
        assert strip_code_fences(f"```json\n{inner}\n```") == inner


class TestParseReview:
    """Test parse_review"""

    def test_bare_json(self, review_payload, sample_review):
        assert parse_review(json.dumps(review_payload)) == sample_review

    def test_fenced_json_matches_bare(self, review_payload):
        text = json.dumps(review_payload)

        fenced = parse_review(f"```json\n{text}\n```")

        assert fenced == parse_review(text)

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ProviderRequestFailed) as exc_info:
            parse_review("Sure! Here is my review: looks good", provider="gemini", model="gemini-1.5-pro")

        assert exc_info.value.kind is ErrorKind.PARSE
        assert exc_info.value.provider == "gemini"
        assert exc_info.value.model == "gemini-1.5-pro"

    def test_json_array_rejected(self):
        with pytest.raises(ProviderRequestFailed) as exc_info:
            parse_review("[1, 2, 3]")
        assert exc_info.value.kind is ErrorKind.PARSE

    def test_empty_text_rejected(self):
        with pytest.raises(ProviderRequestFailed):
            parse_review("")

    def test_loose_fields_normalized(self):
        review = parse_review(
            json.dumps(
                {
                    "summary": "meh",
                    "score": "11",
                    "issues": [{"line": "4", "type": "Perf", "msg": "slow"}],
                }
            )
        )

        assert review.score == 10
        assert review.issues[0].line == 4
        assert review.issues[0].type == "style"
        assert review.optimizations == []

    @pytest.mark.parametrize("raw_score", ["1e400", '"inf"', "Infinity", "-Infinity"])
    def test_infinite_score_becomes_zero(self, raw_score):
        review = parse_review(f'{{"summary": "ok", "score": {raw_score}}}')

        assert review.summary == "ok"
        assert review.score == 0
