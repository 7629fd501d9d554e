# =============================================================================
# tools/pipeline.py  —  Lookup Pipeline (validate → fetch → summarize → guard)
# =============================================================================
#
# HOW IT WORKS (the flow):
#   1. Validate the raw arguments against the tool's pydantic model
#   2. Call the tool's handler (core/ fetch + summarize) with the narrowed
#      arguments
#   3. Pass the report through the Output Budget Guard
#   4. Return exactly one ToolResult: validation error, upstream error,
#      budget rejection, or success
#
# Nothing raised inside steps 1-3 escapes invoke().  A failing upstream call
# costs the client one error result; the session and the process carry on.
#
# LOGGING:
#   Logs go to STDERR (configured in main.py).  In stdio mode STDOUT is the
#   protocol wire, so a stray print() there would corrupt the stream.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for response JSON
#     - YELLOW for intermediate status/progress messages
# =============================================================================

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from core.errors import ShodanError
from core.models import Outcome, ToolResult
from core.shodan_client import ShodanApi
from core.token_budget import Estimator, check_token_limit
from tools.schemas import ToolArgs

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses (JSON output)
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"     # Reset to default terminal color

_MAX_LOGGED_RESPONSE = 500

Handler = Callable[[ShodanApi, Any], Awaitable[dict]]


def _log_request(tool_name: str, params: Any) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    if isinstance(params, dict):
        param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    else:
        param_str = repr(params)
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: ToolResult) -> ToolResult:
    """Log the outcome and a truncated copy of the text in GREEN, then return it."""
    text = result.text
    if len(text) > _MAX_LOGGED_RESPONSE:
        text = text[:_MAX_LOGGED_RESPONSE] + f"... ({len(result.text)} chars)"
    logging.info(f"{_GREEN}  ← {tool_name} [{result.outcome.value}]: {text}{_RESET}")
    return result


# -----------------------------------------------------------------------------
# ToolSpec — one row of the tool table
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[ToolArgs]
    handler: Handler
    max_tokens: Optional[int] = None    # None → the gateway-wide default

    def input_schema(self) -> dict:
        return self.args_model.model_json_schema()


class LookupPipeline:
    """Runs one tool for one protocol engine.

    Args:
        spec: The tool table row.
        api: Upstream client owned by the engine.
        max_tokens: Budget used when the ToolSpec does not set its own.
        estimator: Token counter handed to the Budget Guard (tests use the
            length/4 approximation to stay deterministic).
    """

    def __init__(
        self,
        spec: ToolSpec,
        api: ShodanApi,
        max_tokens: int,
        estimator: Optional[Estimator] = None,
    ) -> None:
        self.spec = spec
        self.api = api
        self.max_tokens = spec.max_tokens or max_tokens
        self.estimator = estimator

    @property
    def name(self) -> str:
        return self.spec.name

    async def invoke(self, raw_args: Any) -> ToolResult:
        if raw_args is None:
            raw_args = {}
        _log_request(self.name, raw_args)

        # Step 1: validate (a non-object payload fails here too)
        try:
            args = self.spec.args_model.model_validate(raw_args)
        except ValidationError as exc:
            return _log_response(self.name, ToolResult.failure(
                f"Invalid arguments for {self.name}: {_describe(exc)}",
                Outcome.VALIDATION_ERROR,
            ))

        # Steps 2-3: fetch and summarize
        try:
            report = await self.spec.handler(self.api, args)
        except ShodanError as exc:
            _log_status(f"upstream error: {exc!r}")
            return _log_response(self.name, ToolResult.failure(
                f"Error: {exc}", Outcome.UPSTREAM_ERROR
            ))
        except Exception as exc:
            # Unexpected payload shapes surface as KeyError/TypeError here.
            logging.exception(f"{self.name} failed while building its report")
            return _log_response(self.name, ToolResult.failure(
                f"Error: {exc}", Outcome.UPSTREAM_ERROR
            ))

        # Step 4: budget guard
        check = check_token_limit(
            report, self.max_tokens, args.break_token_rule, estimator=self.estimator
        )
        if args.break_token_rule:
            _log_status("token limit bypassed (break_token_rule)")
        else:
            _log_status(f"~{check.estimated_tokens} tokens (limit {self.max_tokens})")
        if not check.allowed:
            return _log_response(self.name, ToolResult.failure(
                check.remediation or "Token limit exceeded.", Outcome.BUDGET_REJECTED
            ))

        return _log_response(self.name, ToolResult.success(
            json.dumps(report, indent=2, ensure_ascii=False, default=str)
        ))


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)
