"""Tests for the translate / explain quick-action prompt builders."""

from aihelper.prompts import (
    QUICK_ACTION_MAX_CHARS,
    build_explain_prompt,
    build_translate_prompt,
    clip_selection_for_prompt,
    is_probably_chinese,
    truncate_preview,
)


class TestLanguageDetection:
    def test_english(self):
        assert is_probably_chinese("Hello world") is False

    def test_chinese(self):
        assert is_probably_chinese("你好，世界") is True

    def test_mixed_mostly_chinese(self):
        assert is_probably_chinese("这是一个 API 调用") is True

    def test_mixed_mostly_english(self):
        assert is_probably_chinese("The word 书 means book") is False

    def test_empty(self):
        assert is_probably_chinese("") is False


class TestClipping:
    def test_short_selection(self):
        clipped = clip_selection_for_prompt("  hello  ")
        assert clipped.text == "hello"
        assert clipped.clipped is False

    def test_long_selection(self):
        clipped = clip_selection_for_prompt("x" * (QUICK_ACTION_MAX_CHARS + 10))
        assert clipped.clipped is True
        assert clipped.text.endswith("\n…(truncated)")
        assert clipped.text.startswith("x" * QUICK_ACTION_MAX_CHARS)

    def test_preview(self):
        assert truncate_preview("short") == "short"
        assert truncate_preview("abcdef", max_len=4) == "abc…"


class TestBuilders:
    def test_translate_english_to_chinese(self):
        qp = build_translate_prompt("Good morning")
        assert qp.title == "翻译（英文→中文）"
        assert "请把下面的文本从英文翻译成中文。" in qp.prompt
        assert "```\nGood morning\n```" in qp.prompt

    def test_translate_chinese_to_english(self):
        qp = build_translate_prompt("早上好")
        assert qp.title == "翻译（中文→英文）"
        assert "早上好" in qp.prompt

    def test_explain(self):
        qp = build_explain_prompt("  idempotent  ")
        assert qp.title == "解释"
        assert qp.prompt.startswith("请用中文解释")
        assert "```\nidempotent\n```" in qp.prompt
