"""Helpers for pulling Manim source out of free-form text."""

import re
from typing import Optional

DEFAULT_SCENE_CLASS = "Scene"

_CODE_BLOCK = re.compile(r"```(?:python)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_CLASS_DEF = re.compile(r"class\s+(\w+)\s*\(")


def detect_scene_class(code: str) -> str:
    """Name of the first class defined in code, or "Scene"."""
    match = _CLASS_DEF.search(code)
    return match.group(1) if match else DEFAULT_SCENE_CLASS


def extract_manim_code(text: str) -> Optional[tuple[str, str]]:
    """
    Find Manim code in a markdown-ish response.

    Only the first fenced block is considered, and only if it mentions
    manim. Returns (code, class_name) or None.
    """
    match = _CODE_BLOCK.search(text)
    if not match:
        return None

    code = match.group(1)
    if "manim" not in code:
        return None

    return code, detect_scene_class(code)
