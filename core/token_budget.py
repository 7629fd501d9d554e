# =============================================================================
# core/token_budget.py  —  Output Budget Guard
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Estimates how many model tokens a tool result will cost once serialized,
#   and rejects results that exceed the tool's limit.  The rejection text is
#   returned to the client verbatim, so it doubles as instructions for how
#   to ask again with a smaller request.
#
# ESTIMATION:
#   1. Serialize the result the same way the wire would (compact JSON).
#   2. Count tokens with tiktoken's encoder for the configured model.
#   3. If tiktoken fails (e.g. its BPE file cannot be fetched offline),
#      fall back to ceil(characters / 4).
#
# OVERRIDE:
#   break_token_rule=True skips all of the above and reports 0 tokens.  The
#   estimator is never called on that path.
# =============================================================================

import json
import logging
import math
from typing import Any, Callable, Optional

import tiktoken

from core.models import TokenCheck

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"

Estimator = Callable[[str], int]

REMEDIATION_SUGGESTIONS = (
    "Suggestions:\n"
    '1. Reduce the "limit" parameter to fetch fewer items (e.g., limit: 50)\n'
    '2. Use "skip" + "limit" for pagination instead of fetching all at once\n'
    '3. Add "count: true" to get just the total count first\n'
    "4. Use more specific search filters to narrow results\n"
    "5. If absolutely necessary, retry with break_token_rule: true\n\n"
    "Note: Frequent use of break_token_rule may cause context overflow "
    "and degraded AI performance."
)


def approximate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def count_tokens(text: str, model: str = DEFAULT_MODEL) -> int:
    """Count tokens with tiktoken, falling back to approximate_tokens().

    The encoder is looked up per call and dropped before returning; tiktoken
    caches the underlying BPE ranks itself, so nothing accumulates here.
    """
    try:
        encoding = tiktoken.encoding_for_model(model)
        return len(encoding.encode(text, disallowed_special=()))
    except Exception as exc:
        logger.debug("tiktoken unavailable (%s); using length/4 estimate", exc)
        return approximate_tokens(text)


def serialize_result(result: Any) -> str:
    """Canonical text form used for estimation: compact JSON, unicode kept."""
    return json.dumps(result, separators=(",", ":"), ensure_ascii=False, default=str)


def check_token_limit(
    result: Any,
    max_tokens: int,
    break_rule: bool = False,
    estimator: Optional[Estimator] = None,
) -> TokenCheck:
    """Decide whether ``result`` fits inside ``max_tokens``.

    Args:
        result: Any JSON-serializable value (normally a report dict).
        max_tokens: Positive limit for this tool.
        break_rule: Caller-supplied override.  When True the result is
            always allowed and no estimate is computed.
        estimator: Token counter; defaults to count_tokens().  If it raises,
            the length/4 approximation is used instead.

    Returns:
        A TokenCheck.  On rejection ``remediation`` holds the text to send
        back to the client.
    """
    if break_rule:
        return TokenCheck(allowed=True, estimated_tokens=0)

    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")

    text = serialize_result(result)
    count = estimator or count_tokens
    try:
        tokens = count(text)
    except Exception as exc:
        logger.debug("token estimator failed (%s); using length/4 estimate", exc)
        tokens = approximate_tokens(text)

    if tokens > max_tokens:
        return TokenCheck(
            allowed=False,
            estimated_tokens=tokens,
            remediation=(
                f"Token limit exceeded: result contains {tokens} tokens "
                f"(limit: {max_tokens}).\n\n" + REMEDIATION_SUGGESTIONS
            ),
        )

    return TokenCheck(allowed=True, estimated_tokens=tokens)
