"""
Unit tests for utils/name_utils.py
"""

import pytest

from utils.name_utils import (
    InvalidPathError,
    image_code,
    is_image_name,
    normalize_search_text,
    parent_dir,
    sanitize_name,
    sanitize_path,
    slugify,
)


class TestSanitizePath:

    def test_strips_surrounding_slashes_and_whitespace(self):
        assert sanitize_path("  /A/B/  ") == "A/B"

    def test_collapses_empty_segments(self):
        assert sanitize_path("A//B") == "A/B"

    def test_empty_allowed_by_default(self):
        assert sanitize_path(None) == ""
        assert sanitize_path("///") == ""

    def test_empty_rejected_when_required(self):
        with pytest.raises(InvalidPathError):
            sanitize_path("", allow_empty=False)

    @pytest.mark.parametrize("value", ["..", "A/../B", "./A", "A\\B", "A\x00", "A\nB"])
    def test_rejects_unsafe_values(self, value):
        with pytest.raises(InvalidPathError):
            sanitize_path(value)


class TestSanitizeName:

    def test_single_segment(self):
        assert sanitize_name(" Flores ") == "Flores"

    def test_rejects_nested_name(self):
        with pytest.raises(InvalidPathError):
            sanitize_name("A/B")


class TestHelpers:

    def test_parent_dir(self):
        assert parent_dir("A/B") == "A"
        assert parent_dir("A") == ""
        assert parent_dir("") == ""

    def test_image_names(self):
        assert is_image_name("x.JPG")
        assert is_image_name("x.webp")
        assert not is_image_name("x.gif")
        assert not is_image_name(".folder")

    def test_image_code(self):
        assert image_code("public/files/A/AA-001.jpeg") == "AA-001"

    def test_normalize_search_text(self):
        assert normalize_search_text("  Café   com  LEITE ") == "cafe com leite"
        assert normalize_search_text(None) == ""

    def test_slugify(self):
        assert slugify(" Dia das Mães ") == "dia-das-mães"
