"""Unit tests for llm.py."""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch
from openai import APIConnectionError, APIStatusError, APITimeoutError
from prompt_builder import llm
from prompt_builder.errors import GenerationTimeoutError, ProviderError


def make_request():
    return llm.GenerationRequest(
        instruction="Improve this",
        format_hint="json",
        model="gpt-4o-mini",
        temperature=0.3,
        top_p=0.9,
        max_tokens=512,
    )


def make_response(content):
    mock_message = Mock()
    mock_message.content = content

    mock_choice = Mock()
    mock_choice.message = mock_message

    mock_response = Mock()
    mock_response.choices = [mock_choice]
    return mock_response


class TestInitializeClient:
    """Tests for client initialization."""

    @patch('prompt_builder.llm.AsyncOpenAI')
    def test_initialize_with_api_key_only(self, mock_openai):
        llm.initialize_client("test-key")

        mock_openai.assert_called_once_with(api_key="test-key")

    @patch('prompt_builder.llm.AsyncOpenAI')
    def test_initialize_with_base_url_no_key(self, mock_openai):
        """Test initializing client with base URL and no key uses 'not-needed'."""
        llm.initialize_client("", "http://localhost:11434/v1", timeout=30)

        mock_openai.assert_called_once_with(
            api_key="not-needed",
            base_url="http://localhost:11434/v1",
            timeout=30,
        )


class TestTextHelpers:
    """Tests for instruction building and response cleanup."""

    def test_build_instruction_embeds_rendering(self):
        instruction = llm.build_instruction("yaml", 'role: "Tutor"')

        assert "YAML" in instruction
        assert instruction.endswith('role: "Tutor"')

    def test_build_instruction_unknown_format(self):
        with pytest.raises(ValueError):
            llm.build_instruction("toml", "")

    def test_strip_code_fence_with_language(self):
        assert llm.strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_code_fence_plain(self):
        assert llm.strip_code_fence("```\nline one\nline two\n```\n") == "line one\nline two"

    def test_strip_code_fence_crlf(self):
        assert llm.strip_code_fence('```json\r\n{"a": 1}\r\n```\r\n') == '{"a": 1}'

    def test_strip_code_fence_without_fence(self):
        assert llm.strip_code_fence("  just text \n") == "just text"

    def test_inner_fences_are_kept(self):
        text = "Intro\n```\ncode\n```\nOutro"
        assert llm.strip_code_fence(text) == text

    def test_strip_thinking(self):
        assert llm.strip_thinking("<think>hmm</think>\nAnswer") == "Answer"

    def test_thinking_only_is_kept(self):
        content = "<think>only thoughts</think>"
        assert llm.strip_thinking(content) == content

    def test_request_payload(self):
        payload = make_request().to_dict()

        assert payload["model"] == "gpt-4o-mini"
        assert payload["temperature"] == 0.3
        assert payload["top_p"] == 0.9
        assert payload["max_tokens"] == 512
        assert payload["messages"][-1] == {"role": "user", "content": "Improve this"}


class TestGenerateText:
    """Tests for calling the provider."""

    @patch('prompt_builder.llm.initialize_client')
    def test_success(self, mock_init):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.return_value = make_response("<think>x</think>Refined")
        mock_init.return_value = mock_client

        result = asyncio.run(llm.generate_text(make_request(), "test-key"))

        assert result == "Refined"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["top_p"] == 0.9
        mock_client.close.assert_awaited_once()

    @patch('prompt_builder.llm.initialize_client')
    def test_status_error_surfaces_body(self, mock_init):
        body = '{"error": {"message": "Invalid API key"}}'
        request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
        response = httpx.Response(401, request=request, text=body)

        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = APIStatusError(
            "Unauthorized", response=response, body={"error": {"message": "Invalid API key"}}
        )
        mock_init.return_value = mock_client

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(llm.generate_text(make_request(), "bad-key"))

        assert str(exc_info.value) == body
        assert exc_info.value.status_code == 401
        assert exc_info.value.payload == {"error": {"message": "Invalid API key"}}

    @patch('prompt_builder.llm.initialize_client')
    def test_timeout(self, mock_init):
        request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = APITimeoutError(request=request)
        mock_init.return_value = mock_client

        with pytest.raises(GenerationTimeoutError):
            asyncio.run(llm.generate_text(make_request(), "test-key"))

    @patch('prompt_builder.llm.initialize_client')
    def test_connection_error(self, mock_init):
        request = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = APIConnectionError(request=request)
        mock_init.return_value = mock_client

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(llm.generate_text(make_request(), "", "http://localhost:11434/v1"))

        assert "localhost:11434" in str(exc_info.value)

    @patch('prompt_builder.llm.initialize_client')
    def test_empty_response(self, mock_init):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.return_value = make_response(None)
        mock_init.return_value = mock_client

        with pytest.raises(ProviderError):
            asyncio.run(llm.generate_text(make_request(), "test-key"))
