"""
LLM Manager for Questex.
Handles interactions with the text-generation providers (Gemini, DeepSeek, Ollama).
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from config import Config

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEEPSEEK_API_URL = "https://api.deepseek.com/v1/chat/completions"


@dataclass
class LLMResponse:
    """Response from LLM."""

    text: str
    model: str
    success: bool
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class LLMManager:
    """Manages LLM interactions for Questex."""

    def __init__(
        self,
        provider: Optional[str] = None,
        base_url: Optional[str] = None,
        cache_dir: Optional[Path] = None,
    ):
        """Initialize LLM manager.

        Args:
            provider: LLM provider ("gemini", "deepseek", "ollama"). Defaults to Config.LLM_PROVIDER
            base_url: Base URL for API (for Ollama)
            cache_dir: Response cache directory. Defaults to Config.CACHE_PATH / "llm"
        """
        self.provider = provider or Config.LLM_PROVIDER
        self.base_url = base_url or Config.OLLAMA_BASE_URL

        if self.provider == "gemini":
            self.model = Config.GEMINI_MODEL
        elif self.provider == "deepseek":
            self.model = Config.DEEPSEEK_MODEL
        else:
            self.model = Config.OLLAMA_MODEL

        # Cache settings
        self.cache_enabled = Config.CACHE_ENABLED
        self.cache_ttl = Config.CACHE_TTL
        self.cache_dir = cache_dir or Config.CACHE_PATH / "llm"
        if self.cache_enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

        # Cache statistics
        self.cache_hits = 0
        self.cache_misses = 0

        logger.debug(f"Initialized LLMManager with provider '{self.provider}' ({self.model})")

    def _generate_cache_key(
        self,
        prompt: str,
        system: Optional[str],
        temperature: float,
        json_mode: bool,
    ) -> str:
        """Generate cache key from request parameters.

        Returns:
            SHA256 hash as cache key
        """
        cache_string = json.dumps(
            {
                "provider": self.provider,
                "model": self.model,
                "prompt": prompt,
                "system": system or "",
                "temperature": temperature,
                "json_mode": json_mode,
            },
            sort_keys=True,
        )
        return hashlib.sha256(cache_string.encode()).hexdigest()

    def _get_cached_response(self, cache_key: str) -> Optional[LLMResponse]:
        """Retrieve cached response if available and not expired."""
        if not self.cache_enabled:
            return None

        cache_file = self.cache_dir / f"{cache_key}.json"
        if not cache_file.exists():
            return None

        try:
            with open(cache_file, "r") as f:
                cache_data = json.load(f)

            if time.time() - cache_data.get("timestamp", 0) > self.cache_ttl:
                cache_file.unlink()
                return None

            self.cache_hits += 1
            logger.debug("LLM cache hit")
            return LLMResponse(
                text=cache_data.get("text", ""),
                model=cache_data.get("model", ""),
                success=cache_data.get("success", False),
                error=cache_data.get("error"),
                metadata=cache_data.get("metadata"),
            )

        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read LLM cache: {e}")
            return None

    def _save_to_cache(self, cache_key: str, response: LLMResponse):
        """Save a successful response to cache."""
        if not self.cache_enabled:
            return

        cache_file = self.cache_dir / f"{cache_key}.json"
        try:
            cache_data = {
                "timestamp": time.time(),
                "text": response.text,
                "model": response.model,
                "success": response.success,
                "error": response.error,
                "metadata": response.metadata,
            }
            with open(cache_file, "w") as f:
                json.dump(cache_data, f, indent=2)

            self.cache_misses += 1
            logger.debug("LLM response cached")

        except OSError as e:
            logger.warning(f"Failed to save LLM cache: {e}")

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with cache hits, misses, and hit rate
        """
        total = self.cache_hits + self.cache_misses
        hit_rate = (self.cache_hits / total * 100) if total > 0 else 0

        return {
            "hits": self.cache_hits,
            "misses": self.cache_misses,
            "total": total,
            "hit_rate": round(hit_rate, 2),
        }

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate text from LLM.

        Args:
            prompt: User prompt
            system: System prompt
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate. Defaults to Config.LLM_MAX_OUTPUT_TOKENS
            json_mode: Force JSON output (Gemini and Ollama)

        Returns:
            LLMResponse with generated text; success is False on any failure
        """
        max_tokens = max_tokens or Config.LLM_MAX_OUTPUT_TOKENS

        cache_key = self._generate_cache_key(prompt, system, temperature, json_mode)
        cached_response = self._get_cached_response(cache_key)
        if cached_response:
            return cached_response

        if self.provider == "gemini":
            response = self._gemini_generate(prompt, system, temperature, max_tokens, json_mode)
        elif self.provider == "deepseek":
            response = self._deepseek_generate(prompt, system, temperature, max_tokens)
        elif self.provider == "ollama":
            response = self._ollama_generate(prompt, system, temperature, max_tokens, json_mode)
        else:
            response = LLMResponse(
                text="",
                model=self.model,
                success=False,
                error=f"Provider {self.provider} not implemented yet",
            )

        if response.success:
            self._save_to_cache(cache_key, response)
        else:
            logger.warning(f"LLM request failed ({self.provider}): {response.error}")

        return response

    def _gemini_generate(
        self,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> LLMResponse:
        """Generate using the Gemini generateContent API."""
        model = self.model
        if not Config.GEMINI_API_KEY:
            return LLMResponse(
                text="",
                model=model,
                success=False,
                error="GEMINI_API_KEY not set. Get one at https://aistudio.google.com",
            )

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": max_tokens,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        if json_mode:
            payload["generationConfig"]["responseMimeType"] = "application/json"

        try:
            response = requests.post(
                GEMINI_API_URL.format(model=model),
                params={"key": Config.GEMINI_API_KEY},
                json=payload,
                timeout=Config.LLM_TIMEOUT,
            )
            response.raise_for_status()
            result = response.json()

            candidates = result.get("candidates") or []
            parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
            text = parts[0].get("text", "") if parts else ""
            if not text:
                return LLMResponse(
                    text="", model=model, success=False, error="No response from Gemini API"
                )

            return LLMResponse(
                text=text,
                model=model,
                success=True,
                metadata={"usage": result.get("usageMetadata")},
            )

        except requests.exceptions.HTTPError as e:
            return LLMResponse(
                text="", model=model, success=False, error=f"Gemini API error: {e}"
            )
        except requests.exceptions.RequestException as e:
            return LLMResponse(text="", model=model, success=False, error=f"Gemini error: {e}")

    def _deepseek_generate(
        self,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Generate using DeepSeek API (OpenAI-compatible) with retry on rate limits.

        DeepSeek's JSON mode only returns objects, never a bare array, so
        JSON requests rely on the prompt alone.
        """
        model = self.model
        if not Config.DEEPSEEK_API_KEY:
            return LLMResponse(
                text="",
                model=model,
                success=False,
                error="DEEPSEEK_API_KEY not set. Get one at https://platform.deepseek.com",
            )

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        headers = {
            "Authorization": f"Bearer {Config.DEEPSEEK_API_KEY}",
            "Content-Type": "application/json",
        }

        max_retries = 3
        base_delay = 2  # seconds

        for attempt in range(max_retries):
            try:
                response = requests.post(
                    DEEPSEEK_API_URL, json=payload, headers=headers, timeout=Config.LLM_TIMEOUT
                )
                response.raise_for_status()
                result = response.json()

                return LLMResponse(
                    text=result["choices"][0]["message"]["content"],
                    model=model,
                    success=True,
                    metadata={
                        "usage": result.get("usage"),
                        "finish_reason": result["choices"][0].get("finish_reason"),
                    },
                )

            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status == 401:
                    return LLMResponse(
                        text="",
                        model=model,
                        success=False,
                        error="Invalid DEEPSEEK_API_KEY. Check your API key.",
                    )
                if status == 429 and attempt < max_retries - 1:
                    delay = base_delay * (2**attempt)  # Exponential backoff
                    logger.info(
                        f"Rate limit hit, retrying in {delay}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                return LLMResponse(
                    text="", model=model, success=False, error=f"DeepSeek API error: {e}"
                )
            except (requests.exceptions.RequestException, KeyError, IndexError) as e:
                return LLMResponse(text="", model=model, success=False, error=f"DeepSeek error: {e}")

        return LLMResponse(text="", model=model, success=False, error="Max retries exceeded")

    def _ollama_generate(
        self,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> LLMResponse:
        """Generate using a local Ollama server."""
        model = self.model
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if system:
            payload["system"] = system
        if json_mode:
            payload["format"] = "json"

        try:
            response = requests.post(
                f"{self.base_url}/api/generate", json=payload, timeout=Config.LLM_TIMEOUT
            )
            response.raise_for_status()
            result = response.json()

            return LLMResponse(
                text=result.get("response", ""),
                model=model,
                success=True,
                metadata={"eval_count": result.get("eval_count")},
            )

        except requests.exceptions.ConnectionError:
            return LLMResponse(
                text="",
                model=model,
                success=False,
                error="Cannot connect to Ollama. Is it running? (ollama serve)",
            )
        except requests.exceptions.Timeout:
            return LLMResponse(
                text="",
                model=model,
                success=False,
                error="Request timed out. Model might be too slow.",
            )
        except requests.exceptions.RequestException as e:
            return LLMResponse(text="", model=model, success=False, error=f"Ollama error: {e}")

    @staticmethod
    def is_provider_available(provider: str) -> bool:
        """Check if a provider is available (has API key configured).

        Args:
            provider: Provider name ("gemini", "deepseek", "ollama")

        Returns:
            True if provider is available (API key exists or not required)
        """
        if provider == "ollama":
            return True
        if provider == "gemini":
            return bool(Config.GEMINI_API_KEY)
        if provider == "deepseek":
            return bool(Config.DEEPSEEK_API_KEY)
        return False
