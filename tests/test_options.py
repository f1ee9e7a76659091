"""
Tests for analysis options and their camelCase aliases
"""

import pytest

from screenlens.models.options import AnalysisOptions


def test_defaults():
    opts = AnalysisOptions()

    assert opts.max_thumbnail_width == 800
    assert opts.thumbnail_quality == 0.85
    assert opts.sample_pixels == 2000
    assert opts.k_colors == 3
    assert opts.detect_charts and opts.detect_text and opts.numeric_ocr
    assert opts.max_image_area == 16_000_000
    assert opts.ocr_match_threshold == 192
    assert opts.ocr_skip_blank_windows is True
    assert opts.deadline is None


def test_from_mapping_accepts_camel_and_snake_case():
    opts = AnalysisOptions.from_mapping({"kColors": 5, "numericOCR": False, "sample_pixels": 500})

    assert opts.k_colors == 5
    assert opts.numeric_ocr is False
    assert opts.sample_pixels == 500


def test_from_mapping_empty():
    assert AnalysisOptions.from_mapping(None) == AnalysisOptions()
    assert AnalysisOptions.from_mapping({}) == AnalysisOptions()


def test_unknown_option_rejected():
    with pytest.raises(ValueError):
        AnalysisOptions.from_mapping({"maxThumbnailHeight": 10})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"thumbnail_quality": 0.0},
        {"thumbnail_quality": 1.5},
        {"max_thumbnail_width": 0},
        {"max_image_area": 0},
        {"deadline": -1.0},
        {"max_region_height_fraction": 0.0},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        AnalysisOptions(**kwargs)
