"""
Language model adapters that turn an original text into a ``Revision``.

Every adapter has the same shape, ``(original_text, settings) -> Revision``,
and raises ``ProviderError`` with a user-facing message on failure. A
revision identical to the original is a valid answer ("nothing to change"),
not an error.
"""

from typing import Callable, Dict

import requests
import structlog

from proofreader.errors import ProviderError
from proofreader.models import Revision
from proofreader.settings import MODEL_SPECS, ProofreaderSettings

logger = structlog.get_logger(__name__)

RevisionProvider = Callable[[str, ProofreaderSettings], Revision]

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"


def _timeout(settings: ProofreaderSettings):
    return (10, settings.request_timeout)


def openai_revision(original_text: str, settings: ProofreaderSettings) -> Revision:
    api_key = settings.resolved_api_key()
    if not api_key:
        raise ProviderError("Please set your OpenAI API key in the settings (or OPENAI_API_KEY).")

    endpoint = settings.openai_endpoint or OPENAI_RESPONSES_URL
    payload = {
        "model": settings.model,
        "reasoning": {"effort": settings.reasoning_effort},
        "input": [
            {"role": "developer", "content": settings.static_prompt},
            {"role": "user", "content": original_text},
        ],
    }

    # DOCS https://platform.openai.com/docs/api-reference/responses/create
    try:
        response = requests.post(
            endpoint,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json=payload,
            timeout=_timeout(settings),
        )
    except requests.RequestException as e:
        logger.error("OpenAI request failed", error=str(e))
        raise ProviderError(f"OpenAI request failed: {e}") from e

    if response.status_code == 401:
        raise ProviderError("OpenAI API key is not valid. Please verify the key in the settings.")
    try:
        response.raise_for_status()
        data = response.json()
    except (requests.HTTPError, ValueError) as e:
        logger.error("OpenAI request failed", status=response.status_code, error=str(e))
        raise ProviderError(f"OpenAI request failed (HTTP {response.status_code}).") from e

    logger.debug("OpenAI response", usage=data.get("usage"))

    # DOCS https://platform.openai.com/docs/api-reference/responses/object
    new_text = None
    for item in data.get("output") or []:
        if item.get("role") == "assistant" and item.get("content"):
            new_text = item["content"][0].get("text")
            break
    if not new_text:
        raise ProviderError("OpenAI returned an empty answer.")

    usage = data.get("usage") or {}
    input_tokens = usage.get("input_tokens") or usage.get("prompt_tokens") or 0
    output_tokens = usage.get("output_tokens") or usage.get("completion_tokens") or 0
    spec = MODEL_SPECS.get(settings.model)
    was_truncated = bool(spec) and output_tokens >= spec.max_output_tokens
    cost = spec.estimate_cost(input_tokens, output_tokens) if spec else 0.0

    return Revision(revised_text=new_text, was_truncated=was_truncated, cost=cost)


def lmstudio_revision(original_text: str, settings: ProofreaderSettings) -> Revision:
    if not settings.lmstudio_server_url:
        raise ProviderError("Please set your LM Studio server URL in the settings.")

    server_url = settings.lmstudio_server_url.rstrip("/")
    payload = {
        "model": settings.lmstudio_model or settings.model,
        "messages": [
            {"role": "system", "content": settings.static_prompt},
            {"role": "user", "content": original_text},
        ],
    }

    try:
        response = requests.post(f"{server_url}/v1/chat/completions", json=payload, timeout=_timeout(settings))
    except requests.ConnectionError as e:
        raise ProviderError(
            "Failed to connect to LM Studio server. Ensure it's running and the URL is correct."
        ) from e
    except requests.RequestException as e:
        logger.error("LM Studio request failed", error=str(e))
        raise ProviderError(f"LM Studio request failed: {e}") from e

    try:
        response.raise_for_status()
        data = response.json()
    except (requests.HTTPError, ValueError) as e:
        logger.error("LM Studio request failed", status=response.status_code, error=str(e))
        raise ProviderError(f"LM Studio request failed (HTTP {response.status_code}).") from e

    try:
        choice = data["choices"][0]
        new_text = choice["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError("LM Studio returned an unexpected response.") from e
    if not new_text:
        raise ProviderError("LM Studio returned an empty answer.")

    return Revision(revised_text=new_text, was_truncated=choice.get("finish_reason") == "length")


PROVIDERS: Dict[str, RevisionProvider] = {
    "openai": openai_revision,
    "lmstudio": lmstudio_revision,
}


def get_provider(name: str) -> RevisionProvider:
    try:
        return PROVIDERS[name]
    except KeyError:
        raise ProviderError(f"Unknown LLM provider: {name}") from None
