"""LLM config loader: read a named provider config from policylens/llm_configs/<name>.yaml.

The returned dict has the same shape get_provider_from_config() expects
(provider, model, options, and provider-specific sections such as ollama / vertex).
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Directory containing LLM config YAML files (policylens/llm_configs/)
_LLM_CONFIGS_DIR = Path(__file__).resolve().parent.parent / "llm_configs"


def get_llm_config(version_or_name: str, configs_dir: Path | None = None) -> Optional[Dict[str, Any]]:
    """
    Load LLM config by version or name (e.g. "default", "production").
    Returns None if the file is missing or is not a mapping.
    """
    path = (configs_dir or _LLM_CONFIGS_DIR) / f"{version_or_name}.yaml"
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load LLM config %s: %s", version_or_name, e)
        return None
    if not isinstance(data, dict):
        return None
    return dict(data)


def list_llm_config_names(configs_dir: Path | None = None) -> List[str]:
    """Return sorted list of config names from YAML files (stems of *.yaml)."""
    root = configs_dir or _LLM_CONFIGS_DIR
    if not root.is_dir():
        return []
    return sorted(p.stem for p in root.iterdir() if p.suffix == ".yaml" and p.stem)
