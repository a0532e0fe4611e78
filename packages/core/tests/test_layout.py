"""版式归一化测试 -- normalize_layout 是全函数"""

import pytest
from slidepilot.core.models import SlideLayout, SlidePreview, normalize_layout


class TestNormalizeLayout:
    """normalize_layout 对任意输入都返回封闭集合中的值"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("title_slide", SlideLayout.TITLE_SLIDE),
            ("content", SlideLayout.CONTENT),
            ("TWO_COLUMN", SlideLayout.TWO_COLUMN),
            ("  Quote  ", SlideLayout.QUOTE),
        ],
    )
    def test_exact_match_case_insensitive(self, raw, expected):
        assert normalize_layout(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("title_only", SlideLayout.TITLE_SLIDE),
            ("image_text", SlideLayout.IMAGE),
            ("two_columns", SlideLayout.TWO_COLUMN),
            ("title_content", SlideLayout.CONTENT),
        ],
    )
    def test_alias_table(self, raw, expected):
        assert normalize_layout(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("title_", SlideLayout.TITLE_SLIDE),
            ("Title Page", SlideLayout.TITLE_SLIDE),
            ("left-column", SlideLayout.TWO_COLUMN),
            ("two", SlideLayout.TWO_COLUMN),
            ("full_image_bleed", SlideLayout.IMAGE),
            ("big-quote", SlideLayout.QUOTE),
        ],
    )
    def test_heuristics_for_truncated_or_varied_tokens(self, raw, expected):
        assert normalize_layout(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, 42, ["title"], {"layout": "image"}, "zzz"])
    def test_degrades_to_content(self, raw):
        """空值、非字符串、未知值都回落为 content，不抛异常"""
        assert normalize_layout(raw) == SlideLayout.CONTENT

    def test_slide_preview_normalizes_on_construction(self):
        slide = SlidePreview(id="s1", order_index=0, layout="Image_Text")
        assert slide.layout == SlideLayout.IMAGE

    def test_slide_preview_missing_layout(self):
        slide = SlidePreview(id="s1", layout=None)
        assert slide.layout == SlideLayout.CONTENT
