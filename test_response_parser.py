"""
Tests for parsing vision-model replies into selected and suggested tags.
"""

import pytest

from gallery_tagger.response_parser import ParseMode, parse_response, parse_response_with_mode


class TestStructuredReplies:
    def test_selected_and_suggested(self):
        result, mode = parse_response_with_mode(
            '{"selected": ["日落", "雪山"], "suggested": ["晚霞"]}', 3, 5
        )

        assert mode == ParseMode.STRUCTURED
        assert result.selected == ("日落", "雪山")
        assert result.suggested == ("晚霞",)

    def test_duplicates_dropped_order_kept(self):
        result = parse_response('{"selected":["日落","日落","雪山"],"suggested":[]}', 3, 5)

        assert result.selected == ("日落", "雪山")
        assert result.suggested == ()

    def test_case_insensitive_dedup_after_normalization(self):
        result = parse_response('{"selected": ["Sunset", " sunset ", "#SUNSET", "Beach"]}', 3, 5)

        assert result.selected == ("sunset", "beach")

    def test_lists_are_capped(self):
        result = parse_response(
            '{"selected": ["a", "b", "c", "d"], "suggested": ["e", "f", "g"]}', 2, 1
        )

        assert result.selected == ("a", "b")
        assert result.suggested == ("e",)

    def test_wrapped_in_prose_and_code_fence(self):
        raw = 'Sure! Here you go:\n```json\n{"selected": ["猫"], "suggested": ["窗台"]}\n```\nEnjoy.'

        result = parse_response(raw, 3, 5)

        assert result.selected == ("猫",)
        assert result.suggested == ("窗台",)

    def test_trailing_commas_tolerated(self):
        result = parse_response('{"selected": ["猫", "狗",], "suggested": [],}', 3, 5)

        assert result.selected == ("猫", "狗")

    def test_only_suggestions(self):
        result, mode = parse_response_with_mode('{"selected": [], "suggested": ["晚霞"]}', 3, 5)

        assert mode == ParseMode.STRUCTURED
        assert result.selected == ()
        assert result.suggested == ("晚霞",)

    def test_numbers_kept_and_other_values_skipped(self):
        result = parse_response('{"selected": [2024, true, null, {"x": 1}, "猫"]}', 5, 5)

        assert result.selected == ("2024", "猫")

    def test_field_names_are_case_insensitive(self):
        result = parse_response('{"Selected": ["猫"], "SUGGESTED": ["狗"]}', 3, 5)

        assert result.selected == ("猫",)
        assert result.suggested == ("狗",)

    def test_empty_json_object_means_no_tags(self):
        result, mode = parse_response_with_mode('{"selected": [], "suggested": []}', 3, 5)

        assert mode == ParseMode.EMPTY
        assert result.is_empty


class TestBareArrayReplies:
    def test_array_becomes_selected(self):
        result, mode = parse_response_with_mode('["日落", "海滩", "日落"]', 3, 5)

        assert mode == ParseMode.BARE_ARRAY
        assert result.selected == ("日落", "海滩")
        assert result.suggested == ()

    def test_array_is_capped(self):
        result = parse_response('["a", "b", "c", "d"]', 3, 5)

        assert result.selected == ("a", "b", "c")

    def test_empty_array_means_no_tags(self):
        result, mode = parse_response_with_mode("Tags: []", 3, 5)

        assert mode == ParseMode.EMPTY
        assert result.is_empty


class TestFreeTextReplies:
    def test_separators_split(self):
        result, mode = parse_response_with_mode("夕阳, 海滩; 海滩", 3, 5)

        assert mode == ParseMode.FREE_TEXT
        assert result.selected == ("夕阳", "海滩")
        assert result.suggested == ()

    def test_full_width_separators(self):
        result = parse_response("猫，狗、鸟|花卉\n树木", 10, 5)

        assert result.selected == ("猫", "狗", "鸟", "花卉", "树木")

    def test_malformed_bracket_content_is_split(self):
        result, mode = parse_response_with_mode("[日落, 雪山, 湖泊]", 3, 5)

        assert mode == ParseMode.FREE_TEXT
        assert result.selected == ("日落", "雪山", "湖泊")

    def test_malformed_object_falls_back(self):
        result = parse_response("{selected: 猫, 狗}", 3, 5)

        assert result.selected == ("{selected:-猫", "狗}")

    def test_free_text_is_capped(self):
        result = parse_response("a, b, c, d, e", 3, 5)

        assert result.selected == ("a", "b", "c")


class TestEmptyReplies:
    @pytest.mark.parametrize("raw", [None, "", "   ", "\n"])
    def test_blank_reply(self, raw):
        result, mode = parse_response_with_mode(raw, 3, 5)

        assert mode == ParseMode.EMPTY
        assert result.selected == ()
        assert result.suggested == ()

    def test_only_separators(self):
        assert parse_response(", ; |", 3, 5).is_empty

    def test_non_positive_limits(self):
        assert parse_response('{"selected": ["a"], "suggested": ["b"]}', 0, 0).is_empty

    @pytest.mark.parametrize(
        "raw",
        ["{", "}{", "[[[[", '{"selected": "猫"}', "[" * 5000 + "]" * 5000, '{"selected": [1e999]}'],
    )
    def test_never_raises(self, raw):
        parse_response(raw, 3, 5)
