from types import SimpleNamespace

import pytest

from generation.llm_client import LLMClient
from shared.errors import GenerationError
from shared.interfaces import ProviderConfig


class FakeOpenAI:
    def __init__(self, error: Exception = None):
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Summary from openai"))],
            model="gpt-4o-2024-08-06",
            usage=SimpleNamespace(total_tokens=42),
        )


class FakeAnthropic:
    def __init__(self):
        self.requests = []
        self.messages = SimpleNamespace(create=self.create)

    def create(self, **kwargs):
        self.requests.append(kwargs)
        return SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Summary "),
                SimpleNamespace(type="tool_use"),
                SimpleNamespace(type="text", text="from claude"),
            ],
            model="claude-sonnet-4-20250514",
            usage=SimpleNamespace(input_tokens=30, output_tokens=12),
        )


class FakeGenAI:
    def __init__(self):
        self.models = []
        self.requests = []

    def GenerativeModel(self, model_name, system_instruction=None):
        self.models.append({"model_name": model_name, "system_instruction": system_instruction})
        return SimpleNamespace(generate_content=self.generate_content)

    def generate_content(self, prompt, generation_config=None):
        self.requests.append({"prompt": prompt, "generation_config": generation_config})
        return SimpleNamespace(text="Summary from gemini")


def client_with(config: ProviderConfig, sdk) -> LLMClient:
    client = LLMClient(timeout=5.0, max_tokens=512)
    client._clients[(config.provider, config.api_key)] = sdk
    return client


def test_openai_request_and_result():
    config = ProviderConfig(provider="openai", model="gpt-4o", api_key="sk-test")
    sdk = FakeOpenAI()

    result = client_with(config, sdk).generate("Summarize this", "You summarize.", config)

    assert sdk.requests == [
        {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": "You summarize."},
                {"role": "user", "content": "Summarize this"},
            ],
            "temperature": 0.3,
            "max_tokens": 512,
        }
    ]
    assert result.text == "Summary from openai"
    assert result.provider == "openai"
    assert result.model == "gpt-4o-2024-08-06"
    assert result.tokens_used == 42


def test_openai_without_system_instruction():
    config = ProviderConfig(provider="openai", model="gpt-4o", api_key="sk-test", max_tokens=64)
    sdk = FakeOpenAI()

    client_with(config, sdk).generate("Hi", "", config)

    assert sdk.requests[0]["messages"] == [{"role": "user", "content": "Hi"}]
    assert sdk.requests[0]["max_tokens"] == 64


def test_claude_request_and_result():
    config = ProviderConfig(provider="claude", model="claude-sonnet-4-20250514", api_key="ant-key", temperature=0.1)
    sdk = FakeAnthropic()

    result = client_with(config, sdk).generate("Summarize this", "You summarize.", config)

    request = sdk.requests[0]
    assert request["system"] == "You summarize."
    assert request["messages"] == [{"role": "user", "content": "Summarize this"}]
    assert request["temperature"] == 0.1
    assert request["max_tokens"] == 512
    assert result.text == "Summary from claude"
    assert result.provider == "claude"
    assert result.tokens_used == 42


def test_gemini_request_and_result():
    config = ProviderConfig(provider="gemini", model="gemini-2.0-flash", api_key="platform-key")
    sdk = FakeGenAI()

    result = client_with(config, sdk).generate("Summarize this", "You summarize.", config)

    assert sdk.models == [{"model_name": "gemini-2.0-flash", "system_instruction": "You summarize."}]
    assert sdk.requests == [
        {"prompt": "Summarize this", "generation_config": {"temperature": 0.3, "max_output_tokens": 512}}
    ]
    assert result.text == "Summary from gemini"
    assert result.model == "gemini-2.0-flash"
    assert result.tokens_used is None


def test_provider_error_becomes_generation_error():
    config = ProviderConfig(provider="openai", model="gpt-4o", api_key="sk-test")
    client = client_with(config, FakeOpenAI(error=RuntimeError("rate limited")))

    with pytest.raises(GenerationError) as exc_info:
        client.generate("p", "s", config)

    assert exc_info.value.provider == "openai"
    assert "rate limited" in str(exc_info.value)


def test_sdk_client_cached_per_credential():
    config = ProviderConfig(provider="openai", model="gpt-4o", api_key="sk-test")
    sdk = FakeOpenAI()
    client = client_with(config, sdk)

    assert client._client_for(config) is sdk


def test_requires_api_key():
    with pytest.raises(GenerationError):
        LLMClient().generate("p", "s", ProviderConfig(provider="openai", model="gpt-4o", api_key=""))


def test_rejects_unknown_provider():
    with pytest.raises(GenerationError):
        LLMClient().generate("p", "s", ProviderConfig(provider="mistral", model="m", api_key="k"))
