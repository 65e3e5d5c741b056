"""Prompt builders for the translate / explain quick actions."""

from __future__ import annotations

import re
from dataclasses import dataclass

QUICK_ACTION_MAX_CHARS = 4000
PREVIEW_MAX_CHARS = 240

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_LATIN_RE = re.compile(r"[A-Za-z]")


@dataclass(frozen=True)
class QuickPrompt:
    title: str
    prompt: str


@dataclass(frozen=True)
class ClippedText:
    text: str
    clipped: bool


def is_probably_chinese(text: str) -> bool:
    """True when CJK characters make up a large share of the letters."""
    cjk = len(_CJK_RE.findall(text or ""))
    latin = len(_LATIN_RE.findall(text or ""))
    if cjk == 0:
        return False
    if latin == 0:
        return True
    return cjk >= latin * 0.6


def truncate_preview(text: str, max_len: int = PREVIEW_MAX_CHARS) -> str:
    s = (text or "").strip()
    if len(s) <= max_len:
        return s
    return s[: max(0, max_len - 1)] + "…"


def clip_selection_for_prompt(
    text: str, max_chars: int = QUICK_ACTION_MAX_CHARS,
) -> ClippedText:
    trimmed = (text or "").strip()
    if len(trimmed) <= max_chars:
        return ClippedText(text=trimmed, clipped=False)
    return ClippedText(text=trimmed[:max_chars] + "\n…(truncated)", clipped=True)


def build_translate_prompt(selection_text: str) -> QuickPrompt:
    """Translate between Chinese and English, direction picked from the text."""
    source_text = (selection_text or "").strip()
    zh = is_probably_chinese(source_text)
    source = "中文" if zh else "英文"
    target = "英文" if zh else "中文"
    return QuickPrompt(
        title=f"翻译（{source}→{target}）",
        prompt="\n".join([
            f"请把下面的文本从{source}翻译成{target}。",
            "要求：",
            "- 保留原意、语气与格式（包含换行/列表/标点）",
            "- 专有名词保留原文，必要时补充常见译名",
            "- 只输出译文，不要解释、不要加前后缀",
            "",
            "文本：",
            "```",
            source_text,
            "```",
        ]),
    )


def build_explain_prompt(selection_text: str) -> QuickPrompt:
    source_text = (selection_text or "").strip()
    return QuickPrompt(
        title="解释",
        prompt="\n".join([
            "请用中文解释下面这段文本的含义，尽量简洁清晰：",
            "1) 用 1-2 句话概括整体意思；",
            "2) 解释关键术语/隐含前提；",
            "3) 如果存在歧义，列出 1-2 种可能解读；",
            "4) 如有必要给一个简短例子帮助理解。",
            "",
            "文本：",
            "```",
            source_text,
            "```",
        ]),
    )
