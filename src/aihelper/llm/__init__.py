"""HTTP transport, response sniffing and stream decoding."""

from aihelper.llm.client import AsyncResponsesClient, read_response_text
from aihelper.llm.response_parser import (
    EventStreamDecoder,
    StreamAccumulator,
    extract_response_text,
    extract_stream_delta,
)
from aihelper.llm.retry import RetryPolicy, fetch_with_retry
from aihelper.llm.sniffer import ResponseMode, sniff_response_mode

__all__ = [
    "AsyncResponsesClient",
    "EventStreamDecoder",
    "ResponseMode",
    "RetryPolicy",
    "StreamAccumulator",
    "extract_response_text",
    "extract_stream_delta",
    "fetch_with_retry",
    "read_response_text",
    "sniff_response_mode",
]
