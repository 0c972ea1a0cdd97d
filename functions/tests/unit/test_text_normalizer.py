"""Unit tests for the text normalizer."""

import pytest

from services.text_normalizer import (
    NormalizedText,
    canonicalize_phrase,
    canonicalize_units,
    normalize,
    normalize_dimensions,
    split_segments,
)


class TestCanonicalizeUnits:
    """Tests for unit spelling rules."""

    @pytest.mark.parametrize("text,expected", [
        ("45 square feet", "45 sqft"),
        ("45 sq ft", "45 sqft"),
        ("45 sq. ft.", "45 sqft"),
        ("45 sf", "45 sqft"),
        ("20 linear ft", "20 linear feet"),
        ("20 lin ft", "20 linear feet"),
        ("20 lnft", "20 linear feet"),
        ("3 cubic yard", "3 cubic yards"),
        ("3 cu yd", "3 cubic yards"),
    ])
    def test_unit_spellings(self, text, expected):
        assert canonicalize_units(text) == expected

    def test_words_containing_unit_letters_untouched(self):
        assert canonicalize_units("surface prep") == "surface prep"


class TestNormalizeDimensions:
    """Tests for dimension notation."""

    @pytest.mark.parametrize("text", [
        "12x10 patio",
        "12 x 10 patio",
        "12×10 patio",
        "12' by 10' patio",
        "12 ft x 10 ft patio",
        "12-by-10 patio",
    ])
    def test_notations_become_by(self, text):
        assert normalize_dimensions(text) == "12 by 10 patio"

    def test_decimal_dimensions(self):
        assert normalize_dimensions("12.5x8 pad") == "12.5 by 8 pad"


class TestSplitSegments:
    """Tests for segment splitting."""

    def test_conjunctions_and_punctuation(self):
        assert split_segments("mulch and edging, sod; patio plus steppers") == [
            "mulch", "edging", "sod", "patio", "steppers"
        ]

    def test_with_splits(self):
        assert split_segments("irrigation setup with 2 turf zones") == [
            "irrigation setup", "2 turf zones"
        ]

    def test_empty_segments_dropped(self):
        assert split_segments("mulch,, and ;") == ["mulch"]

    def test_word_containing_and_not_split(self):
        assert split_segments("sandy soil") == ["sandy soil"]


class TestNormalize:
    """Tests for the full normalize() pass."""

    def test_returns_normalized_text(self):
        result = normalize("Mulch")

        assert isinstance(result, NormalizedText)
        assert result.text == "mulch"
        assert result.segments == ["mulch"]

    def test_units_spelling_and_verbs(self):
        result = normalize("I Need 45 Sq Ft of Mulching")

        assert result.text == "i 45 sqft of mulch"
        assert result.segments == ["i 45 sqft of mulch"]

    def test_dimensions_and_segments(self):
        result = normalize("Install a 15x10 patio and 20 lin ft of edging")

        assert result.segments == ["a 15 by 10 patio", "20 linear feet of edging"]

    def test_thousands_separator(self):
        assert normalize("1,200 sqft of sod").text == "1200 sqft of sod"

    def test_glued_units_separated(self):
        assert normalize("45sqft mulch and 50ft edging").segments == [
            "45 sqft mulch", "50 ft edging"
        ]

    def test_sprinklers_become_irrigation(self):
        assert normalize("sprinkler system with 4 zones").segments == [
            "irrigation system", "4 zones"
        ]

    def test_newlines_split_segments(self):
        result = normalize("Previous: mulch\n\nNew message: edging")

        assert result.segments == ["previous: mulch", "new message: edging"]
        assert "\n" not in result.text

    def test_empty_message(self):
        result = normalize("")

        assert result.text == ""
        assert result.segments == []

    def test_deterministic(self):
        message = "Need 12' by 10' paver patio, 3 cu yd topsoil"
        assert normalize(message) == normalize(message)


class TestCanonicalizePhrase:
    """Tests for catalog phrase canonicalization."""

    def test_units_and_spelling(self):
        assert canonicalize_phrase("Sq Ft Mulching") == "sqft mulch"

    def test_verbs_kept(self):
        assert canonicalize_phrase("Remove Sod") == "remove sod"

    def test_none_safe(self):
        assert canonicalize_phrase(None) == ""
