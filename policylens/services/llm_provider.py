"""LLM provider abstraction behind the LLM-backed Extractor.

To add a new provider:
1. Subclass LLMProvider and implement generate().
2. Call register_provider("name", factory) where factory is a callable (config_dict) -> LLMProvider.
3. Add a YAML under policylens/llm_configs/ with provider: "name" and any provider-specific keys.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, Any
import asyncio
import json
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

# Registry: provider name -> factory(config: dict) -> LLMProvider
_PROVIDER_REGISTRY: Dict[str, Callable[[Dict[str, Any]], "LLMProvider"]] = {}


def register_provider(name: str, factory: Callable[[Dict[str, Any]], "LLMProvider"]) -> None:
    """Register an LLM provider. factory(config_dict) must return an LLMProvider instance."""
    name = (name or "").lower().strip()
    if not name:
        raise ValueError("Provider name must be non-empty")
    _PROVIDER_REGISTRY[name] = factory


def list_providers() -> list[str]:
    """Return registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int | None = None, **kwargs) -> str:
        """Generate complete LLM response (non-streaming)."""
        pass


def _ollama_request(base_url: str, model: str, prompt: str, options: dict, timeout: float) -> tuple[str | None, str | None]:
    """Blocking Ollama HTTP request. Returns (error_msg, None) on failure or (None, response) on success."""
    req_data = {"model": model, "prompt": prompt, "stream": False, "options": options}
    data = json.dumps(req_data).encode("utf-8")
    req = urllib.request.Request(
        f"{base_url.rstrip('/')}/api/generate",
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = json.loads(resp.read().decode("utf-8"))
            return (None, body.get("response", ""))
    except urllib.error.HTTPError as e:
        try:
            err_body = e.read().decode("utf-8")
        except Exception:
            err_body = ""
        return (f"Ollama API error: {e.code} - {err_body}", None)
    except Exception as e:
        return (str(e), None)


class OllamaProvider(LLMProvider):
    """Ollama provider for local development. Uses urllib (no aiohttp)."""

    def __init__(self, base_url: str = "http://localhost:11434", model: str = "llama3.1:8b",
                 num_predict: int = 1024, request_timeout: float = 300.0):
        self.base_url = base_url
        self.model = model
        self.num_predict = num_predict
        self.request_timeout = request_timeout

    async def generate(self, prompt: str, max_tokens: int | None = None, **kwargs) -> str:
        """Generate complete response from Ollama. The blocking call runs in a thread."""
        opts = {"num_predict": max_tokens or self.num_predict, "temperature": 0}
        if "options" in kwargs:
            opts = {**opts, **kwargs.pop("options")}
        err, response = await asyncio.to_thread(
            _ollama_request, self.base_url, self.model, prompt, opts, self.request_timeout,
        )
        if err:
            raise RuntimeError(err)
        return response or ""


def _vertex_generate_sync(model_name: str, prompt: str, gen_config: dict) -> str:
    """Blocking Vertex AI (Gemini) generate. Run via asyncio.to_thread to avoid blocking the event loop."""
    from vertexai.generative_models import GenerativeModel
    model = GenerativeModel(model_name)
    response = model.generate_content(prompt, generation_config=gen_config)
    return response.text or ""


class VertexAIProvider(LLMProvider):
    """Vertex AI (Gemini) provider for production. Sync SDK calls run off the event loop."""

    def __init__(self, project_id: str, location: str = "us-central1", model: str = "gemini-2.5-flash"):
        try:
            import vertexai
        except ImportError:
            raise ImportError("google-cloud-aiplatform is required for Vertex AI provider. Install with: pip install -e \".[vertex]\"")
        vertexai.init(project=project_id, location=location)
        self.model_name = model

    def _generation_config(self, max_tokens: int | None) -> dict:
        cfg: dict[str, Any] = {"temperature": 0}
        if max_tokens:
            cfg["max_output_tokens"] = max_tokens
        return cfg

    async def generate(self, prompt: str, max_tokens: int | None = None, **kwargs) -> str:
        """Generate complete response from Vertex AI (Gemini). Sync call runs in a thread."""
        gen_config = self._generation_config(max_tokens)
        return await asyncio.to_thread(_vertex_generate_sync, self.model_name, prompt, gen_config)


def _ollama_factory(config: Dict[str, Any]) -> "LLMProvider":
    """Build OllamaProvider from config dict (for registry)."""
    ollama = config.get("ollama") or {}
    from policylens.config import OLLAMA_BASE_URL, OLLAMA_MODEL, OLLAMA_NUM_PREDICT
    base_url = ollama.get("base_url") or OLLAMA_BASE_URL
    model = config.get("model") or OLLAMA_MODEL
    options = config.get("options") or {}
    num_predict = options.get("num_predict")
    if num_predict is None:
        num_predict = OLLAMA_NUM_PREDICT
    return OllamaProvider(base_url=base_url, model=model, num_predict=int(num_predict))


def _vertex_factory(config: Dict[str, Any]) -> "LLMProvider":
    """Build VertexAIProvider from config dict (for registry)."""
    vertex = config.get("vertex") or {}
    from policylens.config import VERTEX_PROJECT_ID, VERTEX_LOCATION, VERTEX_MODEL
    project_id = vertex.get("project_id") or VERTEX_PROJECT_ID
    if not project_id:
        raise ValueError("Vertex AI requires project_id (vertex.project_id or VERTEX_PROJECT_ID)")
    location = vertex.get("location") or VERTEX_LOCATION
    model = config.get("model") or VERTEX_MODEL
    return VertexAIProvider(project_id=project_id, location=location, model=model)


register_provider("ollama", _ollama_factory)
register_provider("vertex", _vertex_factory)


def get_provider_from_config(config: Dict[str, Any]) -> LLMProvider:
    """Build an LLMProvider from a config dict; config["provider"] must be registered."""
    provider = (config.get("provider") or "").lower().strip()
    if not provider:
        raise ValueError("Config must specify 'provider' (e.g. ollama, vertex)")
    factory = _PROVIDER_REGISTRY.get(provider)
    if not factory:
        raise ValueError(f"Unknown LLM provider: {provider}. Registered: {list_providers()}")
    return factory(config)


def get_llm_provider(config_name: str | None = None) -> LLMProvider:
    """Get LLM provider from a named YAML config, else from environment configuration (config.py)."""
    if config_name:
        from policylens.services.llm_config import get_llm_config
        cfg = get_llm_config(config_name)
        if cfg is not None:
            return get_provider_from_config(cfg)
        logger.warning("LLM config %s not found; falling back to environment", config_name)

    from policylens.config import (
        LLM_PROVIDER,
        OLLAMA_BASE_URL,
        OLLAMA_MODEL,
        OLLAMA_NUM_PREDICT,
        VERTEX_PROJECT_ID,
        VERTEX_LOCATION,
        VERTEX_MODEL
    )
    cfg = {
        "provider": LLM_PROVIDER,
        "model": OLLAMA_MODEL if LLM_PROVIDER == "ollama" else VERTEX_MODEL,
        "options": {"num_predict": OLLAMA_NUM_PREDICT} if LLM_PROVIDER == "ollama" else {},
        "ollama": {"base_url": OLLAMA_BASE_URL},
        "vertex": {"project_id": VERTEX_PROJECT_ID, "location": VERTEX_LOCATION},
    }
    return get_provider_from_config(cfg)
