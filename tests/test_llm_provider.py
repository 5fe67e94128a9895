"""Tests for policylens.services.llm_provider and llm_config."""
from unittest.mock import patch

import pytest
import yaml

from policylens.services.llm_config import get_llm_config, list_llm_config_names
from policylens.services.llm_provider import (
    LLMProvider,
    OllamaProvider,
    get_llm_provider,
    get_provider_from_config,
    list_providers,
    register_provider,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_builtin_providers_registered():
    assert {"ollama", "vertex"} <= set(list_providers())


def test_register_provider_rejects_empty_name():
    with pytest.raises(ValueError):
        register_provider("  ", lambda cfg: None)


def test_register_custom_provider():
    class EchoProvider(LLMProvider):
        async def generate(self, prompt, max_tokens=None, **kwargs):
            return prompt

    register_provider("Echo", lambda cfg: EchoProvider())
    assert isinstance(get_provider_from_config({"provider": "echo"}), EchoProvider)


def test_get_provider_from_config_errors():
    with pytest.raises(ValueError, match="must specify"):
        get_provider_from_config({})
    with pytest.raises(ValueError, match="Unknown LLM provider"):
        get_provider_from_config({"provider": "nope"})


def test_ollama_factory_reads_config():
    provider = get_provider_from_config({
        "provider": "ollama",
        "model": "mistral",
        "options": {"num_predict": 256},
        "ollama": {"base_url": "http://ollama:11434"},
    })
    assert isinstance(provider, OllamaProvider)
    assert provider.model == "mistral"
    assert provider.num_predict == 256
    assert provider.base_url == "http://ollama:11434"


def test_get_llm_provider_from_named_config():
    provider = get_llm_provider("default")
    assert isinstance(provider, OllamaProvider)
    assert provider.model == "llama3.1:8b"


# ---------------------------------------------------------------------------
# OllamaProvider.generate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ollama_generate_passes_max_tokens():
    provider = OllamaProvider(num_predict=1024)
    with patch("policylens.services.llm_provider._ollama_request", return_value=(None, '{"type":"none"}')) as req:
        out = await provider.generate("PROMPT", max_tokens=4096)

    assert out == '{"type":"none"}'
    options = req.call_args.args[3]
    assert options == {"num_predict": 4096, "temperature": 0}


@pytest.mark.asyncio
async def test_ollama_generate_raises_on_error():
    provider = OllamaProvider()
    with patch("policylens.services.llm_provider._ollama_request", return_value=("Ollama API error: 500 - x", None)):
        with pytest.raises(RuntimeError, match="500"):
            await provider.generate("PROMPT")


# ---------------------------------------------------------------------------
# llm_config
# ---------------------------------------------------------------------------

def test_bundled_configs():
    assert list_llm_config_names() == ["default", "production"]
    assert get_llm_config("production")["provider"] == "vertex"
    assert get_llm_config("missing") is None


def test_non_mapping_config_is_ignored(tmp_path):
    (tmp_path / "odd.yaml").write_text(yaml.safe_dump(["not", "a", "mapping"]), encoding="utf-8")
    assert get_llm_config("odd", configs_dir=tmp_path) is None
    assert list_llm_config_names(tmp_path) == ["odd"]
