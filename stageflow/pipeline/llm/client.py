"""
LLM client for Azure OpenAI
"""
import httpx
import time
import logging
from stageflow.core.config import settings

logger = logging.getLogger(__name__)


def call_llm(
    messages: list[dict],
    temperature: float = 0.1,
    max_tokens: int = 1500
) -> str:
    """
    Call Azure OpenAI with retry and exponential backoff
    Asks for a JSON object and returns the content string directly
    """
    url = (
        f"{settings.AZURE_OPENAI_ENDPOINT}/openai/deployments/"
        f"{settings.AZURE_OPENAI_DEPLOYMENT}/chat/completions?"
        f"api-version={settings.AZURE_OPENAI_API_VERSION}"
    )

    headers = {
        "Content-Type": "application/json",
        "api-key": settings.AZURE_OPENAI_API_KEY
    }

    payload = {
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"}
    }

    attempts = settings.LLM_MAX_RETRIES
    for attempt in range(attempts):
        try:
            with httpx.Client(timeout=settings.LLM_TIMEOUT_SECONDS) as client:
                response = client.post(url, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
                return data["choices"][0]["message"]["content"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            if attempt == attempts - 1:
                logger.error(f"LLM call failed after {attempts} attempts: {e}")
                raise
            wait_time = 2 ** attempt
            logger.warning(f"Attempt {attempt + 1} failed, retrying in {wait_time}s...")
            time.sleep(wait_time)
