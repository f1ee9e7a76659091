"""
End-to-end tests for the analysis pipeline
"""

import base64
import io
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image

from conftest import encode_png, white
from screenlens.controllers import analysis_controller
from screenlens.controllers.analysis_controller import AnalysisController, analyze, build_summary
from screenlens.errors import AnalysisTimeout, DecodeFailure, ResourceLimitExceeded, UnsupportedInputKind
from screenlens.models.options import AnalysisOptions


def test_metadata_reports_native_size():
    """Native dimensions are independent of working-buffer scaling"""
    png = encode_png(white(3000, 1000))
    result = analyze(png, {"maxImageArea": 1_000_000}, rng=0)

    assert (result.metadata.width, result.metadata.height) == (3000, 1000)
    assert result.metadata.size_bytes == len(png)
    assert result.working_size == (1400, 467)
    assert (result.thumbnail.width, result.thumbnail.height) == (800, 267)


def test_thumbnail_aspect_ratio():
    result = analyze(encode_png(white(900, 450)), rng=0)
    with Image.open(io.BytesIO(result.thumbnail.data)) as thumb:
        w, h = thumb.size

    assert w == 800
    assert abs(h - w * 450 / 900) <= 1


def test_projection_sums_match(noise_rgb):
    profile = analyze(encode_png(noise_rgb), rng=0).projection_profile
    assert profile.row_sums.sum() == pytest.approx(profile.col_sums.sum())


def test_solid_image(solid_rgb):
    """Solid color: k identical centroids and no regions"""
    result = analyze(encode_png(solid_rgb), {"kColors": 3}, rng=5)

    assert result.dominant_colors == ("#2878c8",) * 3
    assert result.regions == ()
    assert result.digit_readings is None
    assert result.chart_detected is False


def test_two_squares(two_squares_rgb):
    result = analyze(encode_png(two_squares_rgb), rng=0)

    assert [(r.x, r.y, r.width, r.height) for r in result.regions] == [(30, 40, 20, 20), (140, 50, 20, 20)]
    # both regions were attempted and neither produced digits
    assert [r.text for r in result.digit_readings] == ["", ""]
    assert result.digit_sequences == []
    assert "2 text regions found" in result.summary


def test_grid_vs_noise(grid_rgb, noise_rgb):
    assert analyze(encode_png(grid_rgb), rng=0).chart_detected is True
    assert analyze(encode_png(noise_rgb), rng=0).chart_detected is False


def test_seeded_runs_are_identical(two_squares_rgb):
    """Same bytes, options and seed give the same result"""
    png = encode_png(two_squares_rgb)
    first = analyze(png, rng=11)
    second = analyze(png, rng=11)

    assert first.to_dict() == second.to_dict()
    assert first.thumbnail.data == second.thumbnail.data


def test_feature_switches(grid_rgb, two_squares_rgb):
    png = encode_png(grid_rgb)

    no_charts = analyze(png, AnalysisOptions(detect_charts=False), rng=0)
    assert no_charts.chart_detected is False
    assert no_charts.projection_profile.height == 200

    squares = encode_png(two_squares_rgb)
    no_text = analyze(squares, AnalysisOptions(detect_text=False), rng=0)
    assert no_text.regions == ()
    assert no_text.digit_readings is None

    no_ocr = analyze(squares, AnalysisOptions(numeric_ocr=False), rng=0)
    assert no_ocr.regions
    assert no_ocr.digit_readings is None


def test_accepts_data_uri_and_file_handle(two_squares_rgb):
    png = encode_png(two_squares_rgb)
    uri = "data:image/png;base64," + base64.b64encode(png).decode("ascii")

    assert analyze(uri, rng=0).metadata.source_kind == "data_uri"
    assert analyze(io.BytesIO(png), rng=0).metadata.source_kind == "file"


def test_remote_url_goes_through_fetcher(solid_rgb):
    png = encode_png(solid_rgb)
    result = analyze("https://example.com/s.png", fetcher=lambda url: png, rng=0)

    assert result.metadata.source_kind == "url"


def test_decode_errors_abort():
    with pytest.raises(DecodeFailure):
        analyze(b"\x89PNG garbage")
    with pytest.raises(UnsupportedInputKind):
        analyze(12345)


def test_label_budget_error_propagates(two_squares_rgb):
    with pytest.raises(ResourceLimitExceeded):
        analyze(encode_png(two_squares_rgb), AnalysisOptions(label_pixel_budget=100), rng=0)


def test_deadline_exceeded(monkeypatch, two_squares_rgb):
    """Once the deadline passes, no partial result is returned"""
    calls = []

    def fake_monotonic():
        calls.append(1)
        return 0.0 if len(calls) == 1 else 10.0

    monkeypatch.setattr(analysis_controller, "time", SimpleNamespace(monotonic=fake_monotonic))

    controller = AnalysisController(options=AnalysisOptions(deadline=1.0))
    with pytest.raises(AnalysisTimeout):
        controller.analyze(encode_png(two_squares_rgb), rng=0)


def test_to_dict_shape(two_squares_rgb):
    data = analyze(encode_png(two_squares_rgb), rng=0).to_dict()

    assert data["thumbnail"].startswith("data:image/")
    assert data["metadata"]["width"] == 200
    assert len(data["projectionProfile"]["rowSums"]) == 100
    assert data["textRegions"][0] == {"x": 30, "y": 40, "w": 20, "h": 20, "area": 400, "ratio": 1.0}
    assert data["numericOCR"] == [
        {"region": 0, "text": "", "confidence": 0.0},
        {"region": 1, "text": "", "confidence": 0.0},
    ]


def test_summary_wording():
    assert build_summary(True, 4, ["#000000", "#ffffff", "#ff0000", "#00ff00"], ["12", "7", "3", "99"]) == (
        "Detected chart-like elements. 4 text regions found. "
        "Top colors: #000000, #ffffff, #ff0000. Numeric samples: 12, 7, 3"
    )
    assert build_summary(False, 0, [], []) == "Detected no chart-like elements. 0 text regions found. Top colors: "


def test_empty_palette_when_k_is_zero(solid_rgb):
    result = analyze(encode_png(solid_rgb), {"kColors": 0}, rng=0)
    assert result.dominant_colors == ()


def test_gradient_debug_map(grid_rgb):
    gradient = AnalysisController().edge_map(encode_png(grid_rgb))

    assert gradient.data.shape == (200, 200)
    assert float(np.max(gradient.data)) > 0


def test_result_carries_gradient_of_working_buffer(grid_rgb):
    result = analyze(encode_png(grid_rgb), rng=0)

    assert result.gradient is not None
    assert result.gradient.data.shape == (200, 200)
    assert "gradient" not in result.to_dict()
