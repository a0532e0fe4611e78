"""版式归一化 -- 把自由文本版式映射到封闭集合

上游生成器输出的 layout 是自由文本，可能被截断或大小写不一。
normalize_layout 是全函数：任何输入都返回 SlideLayout 成员，从不抛异常。
"""

from typing import Any

import structlog

from .enums import SlideLayout

log = structlog.get_logger()

_VALID_LAYOUTS: set[str] = {layout.value for layout in SlideLayout}

# 已知别名
LAYOUT_ALIASES: dict[str, SlideLayout] = {
    "title_only": SlideLayout.TITLE_SLIDE,
    "title_content": SlideLayout.CONTENT,
    "title_and_content": SlideLayout.CONTENT,
    "image_text": SlideLayout.IMAGE,
    "two_columns": SlideLayout.TWO_COLUMN,
    "two_col": SlideLayout.TWO_COLUMN,
}


def normalize_layout(raw: Any) -> SlideLayout:
    """归一化版式

    顺序：精确匹配 -> 别名表 -> 前缀/子串启发式 -> 默认 content。
    """
    if not isinstance(raw, str):
        return SlideLayout.CONTENT
    value = raw.strip().lower()
    if not value:
        return SlideLayout.CONTENT

    if value in _VALID_LAYOUTS:
        return SlideLayout(value)

    alias = LAYOUT_ALIASES.get(value)
    if alias is not None:
        return alias

    if value.startswith("title"):
        return SlideLayout.TITLE_SLIDE
    if "two" in value or "column" in value:
        return SlideLayout.TWO_COLUMN
    if "image" in value:
        return SlideLayout.IMAGE
    if "quote" in value:
        return SlideLayout.QUOTE

    log.warning("unknown_slide_layout", layout=raw, fallback=SlideLayout.CONTENT.value)
    return SlideLayout.CONTENT
