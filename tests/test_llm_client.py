"""
Tests for the DeepSeek client and the retry loop in LLMClient.
All HTTP calls are mocked.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from latex_assist.llm.base import LLMError
from latex_assist.llm.deepseek_client import DeepSeekClient

MESSAGES = [
    {"role": "system", "content": "You are a LaTeX expert assistant."},
    {"role": "user", "content": "Fix the typo on line 2"},
]


def _client(**kwargs):
    kwargs.setdefault("stream", False)
    kwargs.setdefault("retry_delay", 0)
    return DeepSeekClient(base_url="https://api.deepseek.com/v1/", model="deepseek-chat",
                          api_key="sk-test", **kwargs)


def _json_response(text):
    response = MagicMock()
    response.json.return_value = {
        "choices": [{"message": {"content": text}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5},
    }
    return response


def _stream_response(tokens):
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": t}}]})
        for t in tokens
    ]
    lines.insert(1, "")
    lines.append("data: [DONE]")
    response = MagicMock()
    response.iter_lines.return_value = iter(lines)
    return response


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_non_streaming_request(mock_post):
    mock_post.return_value = _json_response("```latex-diff\n@@ -2,1 +2,1 @@\n-B\n+B2\n```")

    text = _client().generate_response(MESSAGES)

    assert text.startswith("```latex-diff")
    url = mock_post.call_args[0][0]
    kwargs = mock_post.call_args[1]
    assert url == "https://api.deepseek.com/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["messages"] == MESSAGES
    assert kwargs["json"]["stream"] is False


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_streaming_is_buffered(mock_post):
    mock_post.return_value = _stream_response(["Hello", ", ", "world"])
    callback = MagicMock()
    client = _client(stream=True)
    client.set_stream_callback(callback)

    assert client.generate_response(MESSAGES) == "Hello, world"
    callback.assert_called_with(3)


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_stream_failure_falls_back(mock_post):
    mock_post.side_effect = [ConnectionError("reset"), _json_response("ok")]

    assert _client(stream=True).generate_response(MESSAGES) == "ok"
    assert mock_post.call_args_list[1][1]["json"]["stream"] is False


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_retries_exhausted(mock_post):
    mock_post.side_effect = ConnectionError("down")

    with pytest.raises(LLMError):
        _client(max_retries=2).generate_response(MESSAGES)
    assert mock_post.call_count == 2


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_empty_response_retried(mock_post):
    mock_post.side_effect = [_json_response("  "), _json_response("answer")]

    assert _client().generate_response(MESSAGES) == "answer"


@patch("latex_assist.llm.deepseek_client.requests.post")
def test_always_empty_raises(mock_post):
    mock_post.return_value = _json_response("")

    with pytest.raises(LLMError):
        _client(max_retries=2).generate_response(MESSAGES)
