from __future__ import annotations

from typing import Any, List, Optional

from loguru import logger

from safeplan.shared.llm.config import LLMConfig


def _log_prompt_stats(tag: str, prompt: str) -> None:
    try:
        prompt = prompt or ""
        chars = len(prompt)
        lines = prompt.count("\n") + 1
        approx_tokens = chars // 4  # rough estimate
        head = prompt[:300].replace("\n", "\\n")
        logger.info(f"[LLM][{tag}] prompt_chars={chars} prompt_lines={lines} approx_tokens~={approx_tokens}")
        logger.debug(f"[LLM][{tag}] prompt_head={head}")
    except Exception:
        logger.warning(f"[LLM][{tag}] prompt log failed")


def _message_text(result: Any) -> str:
    """Flatten a chat model response into plain text."""
    content = getattr(result, "content", result)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text") or ""))
        return "".join(parts)
    return str(content or "")


class LLMClient:
    """
    Single-shot text generation client.

    Returns the raw JSON text produced by the provider. Nothing in the
    response is trusted here: parsing and schema validation happen in the
    workout generation service. Provider-side retries are disabled so a
    generation is exactly one round trip.
    """

    def __init__(self, cfg: Optional[LLMConfig] = None) -> None:
        self.cfg = cfg or LLMConfig.from_env()

    @property
    def model_name(self) -> str:
        if self.cfg.provider == "gemini":
            return self.cfg.gemini_model
        return self.cfg.openai_model

    def generate_json_text(self, prompt: str, system: Optional[str] = None) -> str:
        if self.cfg.provider == "gemini":
            return self._gemini_generate_text(prompt, system)
        if self.cfg.provider == "openai":
            return self._openai_generate_text(prompt, system)
        raise ValueError(f"Unsupported LLM_PROVIDER={self.cfg.provider}")

    # -----------------------------
    # Providers
    # -----------------------------
    @staticmethod
    def _messages(prompt: str, system: Optional[str]) -> List[tuple]:
        messages: List[tuple] = []
        if system:
            messages.append(("system", system))
        messages.append(("human", prompt))
        return messages

    def _gemini_generate_text(self, prompt: str, system: Optional[str]) -> str:
        if not self.cfg.gemini_api_key:
            raise RuntimeError("Missing GEMINI_API_KEY (or GOOGLE_API_KEY)")

        _log_prompt_stats("GEMINI_LANGCHAIN_INPUT", prompt)

        from langchain_google_genai import ChatGoogleGenerativeAI

        llm = ChatGoogleGenerativeAI(
            model=self.cfg.gemini_model,
            temperature=self.cfg.temperature,
            max_retries=0,
            max_output_tokens=self.cfg.max_tokens,
            timeout=self.cfg.timeout_seconds,
            google_api_key=self.cfg.gemini_api_key,
            response_mime_type="application/json",
        )

        result = llm.invoke(self._messages(prompt, system))
        return _message_text(result)

    def _openai_generate_text(self, prompt: str, system: Optional[str]) -> str:
        if not self.cfg.openai_api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")

        _log_prompt_stats("OPENAI_LANGCHAIN_INPUT", prompt)

        from langchain_openai import ChatOpenAI

        # Accept both api_key and openai_api_key across versions
        try:
            llm = ChatOpenAI(
                model=self.cfg.openai_model,
                api_key=self.cfg.openai_api_key,
                temperature=self.cfg.temperature,
                max_tokens=self.cfg.max_tokens,
                timeout=self.cfg.timeout_seconds,
                max_retries=0,
            )
        except TypeError:
            llm = ChatOpenAI(
                model=self.cfg.openai_model,
                openai_api_key=self.cfg.openai_api_key,
                temperature=self.cfg.temperature,
                max_tokens=self.cfg.max_tokens,
                request_timeout=self.cfg.timeout_seconds,
                max_retries=0,
            )

        json_llm = llm.bind(response_format={"type": "json_object"})
        result = json_llm.invoke(self._messages(prompt, system))
        return _message_text(result)
