"""
Abstract base class for the Claude-backed knowledge extraction agents.
Provides common Claude API interaction, resilience and error handling.
"""

import json
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import anthropic
from anthropic import Anthropic

from meeting_knowledge.config import get_settings
from meeting_knowledge.utils.logger import get_logger
from meeting_knowledge.utils.retry import CircuitBreaker, CircuitOpenError, RetryPolicy

logger = get_logger(__name__)
settings = get_settings()

# Errors worth another attempt; anything else fails on first occurrence
TRANSIENT_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,  # includes APITimeoutError
    anthropic.InternalServerError,
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class AgentProcessingError(Exception):
    """Raised when an agent fails to process content."""
    pass


class MalformedResponseError(AgentProcessingError):
    """Raised when the model answers with data that does not have the required shape."""
    pass


def default_retry_policy() -> RetryPolicy:
    """Build the inference retry policy from settings."""
    return RetryPolicy(
        max_attempts=settings.inference_max_attempts,
        base_delay=settings.inference_base_delay,
        max_delay=settings.inference_max_delay,
        retry_on=TRANSIENT_ERRORS,
    )


class BaseAgent(ABC):
    """
    Abstract base class for AI agents that process meeting transcripts.

    Every Claude call goes through the shared circuit breaker and the
    retry policy. SDK-level retries are disabled so that the policy is the
    only retry layer.
    """

    max_transcript_length: int = 15000

    def __init__(
        self,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Initialize the agent with Claude API client."""
        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.client: Anthropic = Anthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.inference_timeout_seconds,
            max_retries=0,
        )
        self.model: str = settings.claude_model
        self.agent_name: str = self.__class__.__name__
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            recovery_timeout=settings.circuit_breaker_recovery_timeout,
        )
        self.retry_policy = retry_policy or default_retry_policy()

    @abstractmethod
    def process(self, transcript_content: str, **kwargs) -> Any:
        """
        Process transcript content and return the agent's result.

        Raises:
            AgentProcessingError: If processing fails
            MalformedResponseError: If the model output has the wrong shape
        """
        pass

    def _call_claude(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Make a call to Claude API with retries, circuit breaking and logging.

        Args:
            prompt: The user prompt to send to Claude
            system_prompt: Optional system prompt for Claude

        Returns:
            Claude's text response

        Raises:
            AgentProcessingError: If the API call fails
        """
        start_time = time.time()

        logger.info(f"[{self.agent_name}] Sending prompt to Claude",
                    prompt_length=len(prompt),
                    has_system=bool(system_prompt))

        message_params = {
            "model": self.model,
            "max_tokens": 2000,
            "temperature": 0.2,
            "messages": [{"role": "user", "content": prompt}]
        }
        if system_prompt:
            message_params["system"] = system_prompt

        try:
            response = self.circuit_breaker.call(
                self.retry_policy.execute,
                self.client.messages.create,
                operation=self.agent_name,
                **message_params
            )
        except CircuitOpenError as e:
            logger.error(f"[{self.agent_name}] Claude call rejected", error=str(e))
            raise AgentProcessingError(str(e)) from e
        except anthropic.APIError as e:
            duration = time.time() - start_time
            logger.error(f"[{self.agent_name}] Claude API error",
                         error=str(e),
                         error_type=type(e).__name__,
                         duration_seconds=round(duration, 2))
            raise AgentProcessingError(f"Claude API error: {str(e)}") from e
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"[{self.agent_name}] Unexpected error calling Claude",
                         error=str(e),
                         duration_seconds=round(duration, 2))
            raise AgentProcessingError(f"Unexpected error: {str(e)}") from e

        if not response.content:
            raise AgentProcessingError("Empty response from Claude API")
        response_text = response.content[0].text

        duration = time.time() - start_time
        usage = getattr(response, "usage", None)
        logger.info(f"[{self.agent_name}] Claude response received",
                    duration_seconds=round(duration, 2),
                    response_length=len(response_text),
                    input_tokens=getattr(usage, "input_tokens", 0),
                    output_tokens=getattr(usage, "output_tokens", 0))

        return response_text

    def _parse_json(self, raw_response: str) -> Any:
        """
        Parse a JSON answer, tolerating a surrounding markdown code fence.

        Raises:
            MalformedResponseError: If the text is not valid JSON
        """
        text = raw_response.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"[{self.agent_name}] Response is not valid JSON",
                         response_preview=self._truncate_for_log(raw_response))
            raise MalformedResponseError(f"Response is not valid JSON: {e.msg}") from e

    def _truncate_transcript(self, transcript_content: str) -> str:
        """Cut very long transcripts down to what fits comfortably in the prompt."""
        if len(transcript_content) > self.max_transcript_length:
            logger.info(f"[{self.agent_name}] Truncated long transcript for processing",
                        original_length=len(transcript_content))
            return transcript_content[:self.max_transcript_length] + "\n[...transcript truncated...]"
        return transcript_content

    def _truncate_for_log(self, text: str, max_length: int = 200) -> str:
        """
        Truncate text for logging to avoid overly long log messages.

        Args:
            text: Text to truncate
            max_length: Maximum length to keep

        Returns:
            Truncated text with ellipsis if needed
        """
        if len(text) <= max_length:
            return text
        return text[:max_length] + "..."
