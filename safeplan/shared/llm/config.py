from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMConfig:
    provider: str
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    temperature: float = 0.7
    max_tokens: int = 2500
    # Hard ceiling for the single generation round trip (seconds)
    timeout_seconds: float = 30.0

    @staticmethod
    def from_env() -> "LLMConfig":
        return LLMConfig(
            provider=(os.getenv("LLM_PROVIDER") or "openai").lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL") or "gemini-1.5-flash",
            temperature=float(os.getenv("LLM_TEMPERATURE") or 0.7),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS") or 2500),
            timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS") or 30.0),
        )
