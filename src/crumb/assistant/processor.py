"""
Natural-language instruction processor.

Turns a free-text instruction plus the current tree into a list of
batch operations by asking a language model. This is an external,
fallible boundary: every failure (no API key, HTTP error, timeout,
unparseable or malformed output) is folded into an InstructionResult
with an error instead of raising. The processor never touches the
store; nothing is written until the caller applies the operations.

Design Considerations:
- Async-native so a caller can cancel a slow request by abandoning it
- Sync wrapper for the CLI
- Retry with exponential backoff on transport failures
- Either an injected client (async callable prompt -> text) or the
  Anthropic Messages API over httpx
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from crumb.core.config import AssistantConfig
from crumb.core.constants import ANTHROPIC_API_VERSION, RETRYABLE_CLIENT_STATUSES
from crumb.core.exceptions import InstructionError, OperationParseError
from crumb.assistant.prompt import PreviousProposal, build_prompt, extract_json
from crumb.tasks.operations import TaskOperation, parse_operations
from crumb.tasks.tree import TaskForest


logger = logging.getLogger(__name__)

LLMClient = Callable[[str], Awaitable[str]]


@dataclass
class InstructionResult:
    """
    Outcome of processing one instruction.

    Attributes:
        operations: Proposed operations (empty on failure)
        error: Failure reason, None on success
        raw_response: Model output text, if any was received
    """

    operations: list[TaskOperation] = field(default_factory=list)
    error: Optional[str] = None
    raw_response: str = ""

    @property
    def ok(self) -> bool:
        """True on success, including a successful empty proposal."""
        return self.error is None

    @classmethod
    def failure(cls, error: str, raw_response: str = "") -> "InstructionResult":
        return cls(operations=[], error=error, raw_response=raw_response)


class InstructionProcessor:
    """Asks a language model for task operations."""

    def __init__(
        self,
        config: AssistantConfig | None = None,
        llm_client: LLMClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Model and API settings
            llm_client: Optional async callable used instead of HTTP
            transport: Optional httpx transport (for tests and proxies)
        """
        self._config = config or AssistantConfig()
        self._llm_client = llm_client
        self._transport = transport
        self._call_count = 0

    @property
    def config(self) -> AssistantConfig:
        return self._config

    @property
    def call_count(self) -> int:
        return self._call_count

    def process(
        self,
        instruction: str,
        forest: TaskForest,
        previous: Optional[PreviousProposal] = None,
    ) -> InstructionResult:
        """Synchronous wrapper around ``process_async``."""
        return asyncio.run(self.process_async(instruction, forest, previous))

    async def process_async(
        self,
        instruction: str,
        forest: TaskForest,
        previous: Optional[PreviousProposal] = None,
    ) -> InstructionResult:
        """
        Produce operations for an instruction.

        Args:
            instruction: Free-text instruction
            forest: Current task tree
            previous: Earlier proposal being revised

        Returns:
            InstructionResult; never raises for model or parse failures
        """
        if not instruction.strip():
            return InstructionResult.failure("Instruction is empty")

        prompt = build_prompt(instruction, forest, previous)

        try:
            response_text = await self._call_llm_with_retry(prompt)
        except InstructionError as e:
            logger.warning(f"Instruction processing failed: {e}")
            return InstructionResult.failure(e.message)

        return self._parse_response(response_text)

    async def _call_llm_with_retry(self, prompt: str) -> str:
        """
        Call the model, retrying transport failures.

        Raises:
            InstructionError: If every attempt fails
        """
        last_error: str | None = None
        attempts = max(1, self._config.max_retries + 1)

        for attempt in range(attempts):
            try:
                response_text = await self._call_llm(prompt)
                self._call_count += 1
                return response_text

            except InstructionError:
                # configuration problems do not get better on retry
                raise

            except (asyncio.TimeoutError, httpx.TimeoutException):
                last_error = "Request timed out"
                logger.warning(f"Model call attempt {attempt + 1} timed out")

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if 400 <= status < 500 and status not in RETRYABLE_CLIENT_STATUSES:
                    raise InstructionError(
                        f"Request rejected with status {status}",
                        reason="http_status",
                        details={"status_code": status},
                    ) from e
                last_error = f"HTTP {status}"
                logger.warning(f"Model call attempt {attempt + 1} got status {status}")

            except Exception as e:
                last_error = str(e)
                logger.warning(f"Model call attempt {attempt + 1} failed: {e}")

            if attempt < attempts - 1:
                delay = self._config.retry_delay_seconds * (2 ** attempt)
                await asyncio.sleep(delay)

        raise InstructionError(
            f"All {attempts} attempts failed: {last_error}",
            reason="request_failed",
        )

    async def _call_llm(self, prompt: str) -> str:
        """Make one model call and return its text."""
        if self._llm_client is not None:
            return await asyncio.wait_for(
                self._llm_client(prompt),
                timeout=self._config.timeout_seconds,
            )

        api_key = os.environ.get(self._config.api_key_env)
        if not api_key:
            raise InstructionError(
                f"Environment variable {self._config.api_key_env} is not set",
                reason="missing_api_key",
            )

        async with httpx.AsyncClient(
            base_url=self._config.api_base_url,
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(
                "/v1/messages",
                headers={
                    "x-api-key": api_key,
                    "anthropic-version": ANTHROPIC_API_VERSION,
                    "content-type": "application/json",
                },
                json={
                    "model": self._config.model,
                    "max_tokens": self._config.max_tokens,
                    "temperature": self._config.temperature,
                    "messages": [{"role": "user", "content": prompt}],
                },
            )
            response.raise_for_status()
            data = response.json()

        return "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )

    def _parse_response(self, response_text: str) -> InstructionResult:
        """Turn model text into validated operations."""
        if not response_text.strip():
            return InstructionResult.failure("Empty response from model")

        try:
            data: Any = extract_json(response_text)
        except json.JSONDecodeError as e:
            return InstructionResult.failure(f"JSON parse error: {e}", response_text)

        if isinstance(data, dict):
            data = data.get("operations")
        if not isinstance(data, list):
            return InstructionResult.failure("Response has no operation list", response_text)

        try:
            operations = parse_operations(data)
        except OperationParseError as e:
            return InstructionResult.failure(str(e), response_text)

        return InstructionResult(operations=operations, raw_response=response_text)
