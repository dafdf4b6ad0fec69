import json
import logging

import pytest
from pydantic import ValidationError

from sistec.config import Settings
from sistec.core import ConfigurationException, LLMException
from sistec.infrastructure.llm import (
    GeminiLLMClient,
    MockLLMClient,
    OpenAILLMClient,
    UnconfiguredLLMClient,
    build_llm_client,
)
from sistec.main import _init_llm_client
from sistec.shared.infrastructure.logging import CustomJsonFormatter, get_context_logger
from sistec.triage.domain import extract_verdict


# ========== Settings ==========

def test_unknown_environment_is_rejected():
    with pytest.raises(ValidationError):
        Settings(environment="qa")


def test_llm_provider_is_normalized():
    assert Settings(llm_provider="MOCK").llm_provider == "mock"
    with pytest.raises(ValidationError):
        Settings(llm_provider="claude")


# ========== LLM clients ==========

def test_mock_provider_builds_mock_client():
    assert isinstance(build_llm_client(Settings(llm_provider="mock")), MockLLMClient)


def test_gemini_client_uses_its_own_key():
    config = Settings(llm_provider="gemini", gemini_api_key="gm-test", openai_api_key=None)
    client = build_llm_client(config)
    assert isinstance(client, GeminiLLMClient)
    assert client.provider == "gemini"


def test_gemini_without_key_does_not_fall_back_to_openai_key():
    config = Settings(llm_provider="gemini", gemini_api_key=None, openai_api_key="sk-test")
    with pytest.raises(ConfigurationException):
        build_llm_client(config)


def test_openai_provider_builds_openai_client():
    config = Settings(llm_provider="openai", openai_api_key="sk-test", llm_model="gpt-4o-mini")
    assert isinstance(build_llm_client(config), OpenAILLMClient)


def test_missing_key_degrades_to_unconfigured_client():
    config = Settings(llm_provider="gemini", gemini_api_key=None)
    assert isinstance(_init_llm_client(config), UnconfiguredLLMClient)


async def test_unconfigured_client_always_fails():
    client = UnconfiguredLLMClient("gemini API key not configured")
    with pytest.raises(LLMException):
        await client.chat_completion([{"role": "user", "content": "oi"}], operation="triage")


async def test_mock_client_triage_reply_is_a_valid_verdict():
    reply = await MockLLMClient().chat_completion([], operation="triage")
    assert extract_verdict(reply.content).automate


# ========== Logging ==========

def format_record(**extra):
    record = logging.LogRecord("sistec.test", logging.INFO, __file__, 1, "LLM call completed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    formatter = CustomJsonFormatter(fmt="%(asctime)s %(name)s %(levelname)s %(message)s")
    return json.loads(formatter.format(record))


def test_log_records_are_json_with_timestamp():
    payload = format_record(ticket_id=7)
    assert payload["message"] == "LLM call completed"
    assert payload["ticket_id"] == 7
    assert payload["timestamp"]
    assert "environment" in payload


def test_credentials_are_redacted():
    payload = format_record(
        api_key="gm-secret",
        authorization="Bearer abc",
        access_token="abc",
        prompt_tokens="120",
    )
    assert payload["api_key"] == "***REDACTED***"
    assert payload["authorization"] == "***REDACTED***"
    assert payload["access_token"] == "***REDACTED***"
    assert payload["prompt_tokens"] == "120"


def test_correlation_id_is_carried():
    assert format_record(correlation_id="abc-123")["correlation_id"] == "abc-123"


def test_context_logger_keeps_call_fields(caplog):
    with caplog.at_level(logging.INFO):
        get_context_logger("sistec.test", "req-42").info("Ticket approved", extra={"ticket_id": 3})

    record = caplog.records[-1]
    assert record.correlation_id == "req-42"
    assert record.ticket_id == 3
