import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from crtool_core.errors import ConfigError

DEFAULT_TEMPLATE_NAME = "default"

DEFAULT_SYSTEM_PROMPT = """你是一个经验丰富的高级编程架构师，请根据提供的 git diff 内容进行代码评审。
请按照以下模板格式输出评审结果：

## 代码变更概述
[简要描述本次代码变更的主要内容]

## 主要问题
1. [问题1]（严重程度: 严重/中等/低）
   - 影响: [描述影响]
   - 建议: [修改建议]
2. [问题2]
   ...

## 代码质量评估
- 可读性: [高/中/低]
- 可维护性: [高/中/低]
- 安全性: [高/中/低]

## 优化建议
1. [具体的优化建议1]
2. [具体的优化建议2]
...

## 其他注意事项
[其他需要注意的点]

请确保评审意见具体、清晰、可操作。"""

DEFAULT_CONFIG: dict = {
    "api_key": None,
    "model_name": "qwen-plus",
    "base_url": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    "timeout": 30,
    "max_retries": 1,  # 1 = single attempt, no retry
    "output": {
        "dir": "./review_results",
        "format": ["markdown"],
        "include_git_info": True,
        "include_stats": True,
        "css_template": "github",
        "pdf": {
            "engine": "wkhtmltopdf",  # or "chrome"
            "binary": None,  # None = look up the engine name on PATH
            "page_size": "A4",
            "page_numbers": False,
            "timeout": 30,
        },
    },
    "cache": {
        "enabled": True,
        "dir": "./.cache/code_review",
        "expire_days": 7,
    },
    "review": {
        "template": DEFAULT_TEMPLATE_NAME,
        "templates": {
            DEFAULT_TEMPLATE_NAME: {"system_prompt": DEFAULT_SYSTEM_PROMPT, "focus_points": []},
        },
        "ignore_patterns": [],  # fnmatch patterns, e.g. "*.lock", "vendor/*"
        "max_diff_size": 2000,  # bytes
    },
}

# Searched in order when no explicit --config path is given.
CONFIG_SEARCH_PATHS = [
    Path(".cr-tool.yml"),
    Path(".cr-tool.json"),
    Path("~/.cr-tool/config.yml").expanduser(),
    Path("/etc/cr-tool/config.yml"),
]

ENV_OVERRIDES = {
    "CR_TOOL_API_KEY": "api_key",
    "CR_TOOL_MODEL_NAME": "model_name",
    "CR_TOOL_BASE_URL": "base_url",
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` into ``base`` in place. Nested dicts merge, everything else replaces."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _set_dotted(config: dict, dotted_key: str, value) -> None:
    *parents, leaf = dotted_key.split(".")
    node = config
    for part in parents:
        node = node.setdefault(part, {})
    node[leaf] = value


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        return path
    for candidate in CONFIG_SEARCH_PATHS:
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The config file (explicit path, else the first of CONFIG_SEARCH_PATHS)
      3. CR_TOOL_* environment variables
      4. CLI argument overrides (dotted keys, e.g. "output.dir")
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = find_config_file(config_path)
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
        _deep_merge(config, file_config)

    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                _set_dotted(config, key, value)

    # "format: html" in a config file means a single format.
    output = config.get("output")
    if isinstance(output, dict) and isinstance(output.get("format"), str):
        output["format"] = [output["format"]]

    return config


def resolve_template(config: dict) -> str:
    """Return the system prompt of the configured review template.

    An unknown template name falls back to ``default``. When that is missing
    too the config is rejected rather than sending an empty system prompt.
    """
    review = config.get("review") or {}
    if not isinstance(review, dict):
        raise ConfigError("'review' must be a mapping.")
    templates = review.get("templates") or {}
    if not isinstance(templates, dict):
        raise ConfigError("'review.templates' must be a mapping of template names to templates.")
    name = review.get("template") or DEFAULT_TEMPLATE_NAME

    template = templates.get(name)
    if template is None:
        template = templates.get(DEFAULT_TEMPLATE_NAME)
    if template is not None and not isinstance(template, dict):
        raise ConfigError(f"Review template {name!r} must be a mapping with a 'system_prompt' key.")
    if not template or not template.get("system_prompt"):
        raise ConfigError(f"Review template {name!r} is not defined and no usable 'default' template exists.")
    return template["system_prompt"]


def validate_config(config: dict) -> None:
    """Pre-flight check run before any network or disk I/O."""
    if not config.get("api_key"):
        raise ConfigError("API key is not set. Set api_key in the config file or CR_TOOL_API_KEY.")
    if not config.get("model_name"):
        raise ConfigError("Model name is not set (model_name).")
    if not config.get("base_url"):
        raise ConfigError("Endpoint URL is not set (base_url).")
    resolve_template(config)


def write_config(path: str, config: dict) -> Path:
    """Write or update a YAML config file, preserving any existing keys."""
    target = Path(path).expanduser()
    existing: dict = {}
    if target.exists():
        existing = yaml.safe_load(target.read_text(encoding="utf-8")) or {}
    _deep_merge(existing, config)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return target
