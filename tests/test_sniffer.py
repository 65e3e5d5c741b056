"""Tests for content-based response mode detection."""

import pytest

from aihelper.llm.sniffer import ResponseMode, sniff_response_mode


class TestSniffResponseMode:
    @pytest.mark.parametrize("chunk", [
        '{"output_text": "hi"}',
        "  \n[1, 2]",
        '{"note": "data: looks like sse"}\ndata: x',
    ])
    def test_json(self, chunk):
        assert sniff_response_mode(chunk) is ResponseMode.JSON

    @pytest.mark.parametrize("chunk", [
        "data: {}",
        "event: response.created\ndata: {}",
        ": keep-alive\n\n",
        "\n\ndata: {}",
        "retry: 100\ndata: {}",
        "id: 7\nevent: ping",
    ])
    def test_event_stream(self, chunk):
        assert sniff_response_mode(chunk) is ResponseMode.EVENT_STREAM

    @pytest.mark.parametrize("chunk", ["", "hello world", "<html>oops</html>"])
    def test_unknown_defaults_to_json(self, chunk):
        assert sniff_response_mode(chunk) is ResponseMode.JSON
