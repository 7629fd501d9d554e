# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the gateway)
# =============================================================================
#
# These dataclasses describe what flows out of a tool invocation.  They carry
# almost no behavior: a tool result knows how to say what kind of outcome it
# is, and a budget check knows whether it passed.
#
# DESIGN PRINCIPLE — "exactly one outcome":
#   Every invocation ends in exactly one of four outcomes (success,
#   validation failure, upstream failure, budget rejection).  The outcome is
#   an enum field rather than a pile of booleans, so two outcomes can never
#   be set at once.
# =============================================================================

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    """How a single tool invocation ended."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    UPSTREAM_ERROR = "upstream_error"
    BUDGET_REJECTED = "budget_rejected"


# -----------------------------------------------------------------------------
# TokenCheck — result of one pass through the Output Budget Guard
# -----------------------------------------------------------------------------
# Transient.  Built by core.token_budget.check_token_limit and thrown away as
# soon as the pipeline has read it.
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TokenCheck:
    allowed: bool
    estimated_tokens: int
    remediation: Optional[str] = None     # Only set when allowed is False


# -----------------------------------------------------------------------------
# ToolResult — what the protocol engine sends back for tools/call
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ToolResult:
    """Text payload plus the outcome that produced it.

    ``is_error`` is derived from the outcome: anything other than SUCCESS
    means "no usable result produced", including budget rejections.
    """

    text: str
    outcome: Outcome

    @property
    def is_error(self) -> bool:
        return self.outcome is not Outcome.SUCCESS

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        return cls(text=text, outcome=Outcome.SUCCESS)

    @classmethod
    def failure(cls, text: str, outcome: Outcome) -> "ToolResult":
        if outcome is Outcome.SUCCESS:
            raise ValueError("failure() needs a non-success outcome")
        return cls(text=text, outcome=outcome)
