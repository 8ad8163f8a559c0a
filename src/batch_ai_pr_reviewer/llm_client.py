# src/batch_ai_pr_reviewer/llm_client.py
import os
import json
import asyncio
import logging
import litellm  # type: ignore
from typing import Dict, Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .plugin_config import PluginConfig

logger = logging.getLogger(__name__)


def setup_litellm_provider_env(config: 'PluginConfig'):
    """
    Sets provider-specific environment variables LiteLLM reads for project ids and
    regions. API key, base URL and API version are passed per call instead.
    """
    model = (config.llm_model or "").lower()
    if not model:
        logger.info("No LLM model specified in config, skipping provider-specific env setup for LiteLLM.")
        return

    provider = model.split("/")[0] if "/" in model else ""

    if provider == "vertex_ai" or "vertex_ai" in model:
        if config.vertex_project:
            os.environ["VERTEXAI_PROJECT"] = config.vertex_project
            logger.info(f"Set environment variable VERTEXAI_PROJECT to '{config.vertex_project}'")
        if config.vertex_location:
            os.environ["VERTEXAI_LOCATION"] = config.vertex_location
            logger.info(f"Set environment variable VERTEXAI_LOCATION to '{config.vertex_location}'")

    if provider == "bedrock" and config.aws_region_name:
        os.environ["AWS_REGION_NAME"] = config.aws_region_name
        os.environ["AWS_DEFAULT_REGION"] = config.aws_region_name
        logger.info(f"Set AWS_REGION_NAME/AWS_DEFAULT_REGION to '{config.aws_region_name}' for Bedrock.")

    if provider == "azure" and not config.azure_api_version:
        logger.warning("Azure model configured but PLUGIN_AZURE_API_VERSION is not set. "
                       "This is often required for Azure OpenAI calls.")


class LLMClient:
    """
    Thin async wrapper over LiteLLM. Every failure is logged and reported as None so
    the caller can degrade to an empty review instead of aborting the run.
    """

    def __init__(self, config: 'PluginConfig'):
        self.config = config

    def _build_kwargs(self, model: str, prompt: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "timeout": self.config.llm_timeout,
        }
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        if self.config.max_tokens is not None:
            kwargs["max_tokens"] = self.config.max_tokens
        if self.config.llm_api_key:
            kwargs["api_key"] = self.config.llm_api_key
        if self.config.llm_api_base:
            kwargs["api_base"] = self.config.llm_api_base
        if self.config.azure_api_version and "azure" in model.lower():
            kwargs["api_version"] = self.config.azure_api_version
        return kwargs

    async def _call(self, kwargs: Dict[str, Any], stage: str) -> Optional[str]:
        if logger.isEnabledFor(logging.DEBUG):
            # Avoid logging potentially large messages payload
            debug_kwargs = {k: (v if k not in ("messages", "api_key") else "[TRUNCATED]") for k, v in kwargs.items()}
            logger.debug(f"LiteLLM {stage} request kwargs: {json.dumps(debug_kwargs, indent=2, default=str)}")

        logger.info(f"Sending {stage} request to LLM, model: {kwargs['model']}")
        try:
            response = await asyncio.wait_for(litellm.acompletion(**kwargs), timeout=self.config.llm_timeout)
        except asyncio.TimeoutError:
            logger.error(f"LLM {stage} request timed out after {self.config.llm_timeout}s.")
            return None
        except litellm.exceptions.Timeout as e: # type: ignore
            logger.error(f"LiteLLM Timeout during {stage} request: {e}")
            return None
        except litellm.exceptions.APIConnectionError as e: # type: ignore
            logger.error(f"LiteLLM API Connection Error during {stage} request: {e}")
            return None
        except litellm.exceptions.RateLimitError as e: # type: ignore
            logger.error(f"LiteLLM Rate Limit Error during {stage} request: {e}")
            return None
        except litellm.exceptions.APIError as e: # type: ignore
            logger.error(f"LiteLLM API Error during {stage} request (Status: {getattr(e, 'status_code', 'N/A')}, Message: {getattr(e, 'message', e)})")
            return None
        except Exception as e:
            logger.error(f"An unexpected error occurred during {stage} LLM request: {e}", exc_info=True)
            return None

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            logger.warning(f"LLM {stage} response structure not as expected or content is missing.")
            return None

        if not content or not content.strip():
            logger.warning(f"LLM returned empty content for {stage} request.")
            return None

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"LLM {stage} response content (first 2000 chars): {content[:2000]}")
        return content.strip()

    async def complete(self, prompt: str) -> Optional[str]:
        """Primary review call: free-text prompt in, free-text answer out."""
        if not self.config.llm_model:
            logger.error("LLM model is not configured. Cannot get review.")
            return None
        return await self._call(self._build_kwargs(self.config.llm_model, prompt), stage="review")

    async def complete_structured(self, prompt: str, response_format: Dict[str, Any]) -> Optional[str]:
        """
        Correction call: asks the format model to answer with output conforming to
        the given response_format descriptor.
        """
        model = self.config.llm_format_model or self.config.llm_model
        if not model:
            logger.error("LLM format model is not configured. Cannot format review.")
            return None
        kwargs = self._build_kwargs(model, prompt)
        kwargs["response_format"] = response_format
        return await self._call(kwargs, stage="format")
