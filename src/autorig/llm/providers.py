"""
LLM 提供商构建 - LLM Provider Building

根据环境变量为实体抽取构建 ChatOpenAI 实例。
Build ChatOpenAI instances for entity extraction from environment settings.
"""

from __future__ import annotations

import os
from typing import Literal, Optional

from langchain_openai import ChatOpenAI

Provider = Literal["zhipu", "openrouter", "openai"]

# provider -> (api key env, model env, default model, base url env, default base url)
_PROVIDER_ENV = {
    "openrouter": (
        "OPENROUTER_API_KEY",
        "OPENROUTER_MODEL",
        "openrouter/free",
        "OPENROUTER_BASE_URL",
        "https://openrouter.ai/api/v1",
    ),
    "zhipu": (
        "ZHIPU_API_KEY",
        "ZHIPU_MODEL",
        "glm-4.7-flash",
        "ZHIPU_BASE_URL",
        "https://open.bigmodel.cn/api/paas/v4/",
    ),
    "openai": ("OPENAI_API_KEY", "OPENAI_MODEL", "gpt-4o", None, None),
}


def build_llm(provider: Provider, temperature: float) -> Optional[ChatOpenAI]:
    """
    构建指定提供商的 LLM 实例 - Build LLM Instance for Specified Provider

    参数 Parameters:
        provider: LLM 提供商类型
                  LLM provider type
        temperature: 生成温度（0.0-1.0）
                     Generation temperature (0.0-1.0)

    返回 Returns:
        ChatOpenAI 实例，如果 API key 缺失则返回 None
        ChatOpenAI instance, or None if the API key is missing
    """
    if provider not in _PROVIDER_ENV:
        return None
    key_env, model_env, default_model, base_env, default_base = _PROVIDER_ENV[provider]
    api_key = os.getenv(key_env)
    if not api_key:
        return None

    kwargs = {
        "model": os.getenv(model_env, default_model),
        "temperature": temperature,
        "api_key": api_key,
        "timeout": float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
        "max_retries": int(os.getenv("LLM_MAX_RETRIES", "0")),
    }
    if base_env is not None:
        kwargs["base_url"] = os.getenv(base_env, default_base)
    return ChatOpenAI(**kwargs)

