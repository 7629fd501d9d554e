# =============================================================================
# tools/schemas.py  —  Tool argument models
# =============================================================================
#
# One pydantic model per tool.  Each model does two jobs:
#   1. model_validate() narrows the raw JSON arguments (or raises
#      ValidationError, which the pipeline turns into an error result)
#   2. model_json_schema() is what tools/list advertises as inputSchema
#
# Field descriptions are read by the client's model, so they say what to
# pass, not how it is implemented.
# =============================================================================

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_CVE_ID = re.compile(r"^CVE-\d{4}-\d{4,}$", re.IGNORECASE)


class ToolArgs(BaseModel):
    """Fields every tool accepts."""

    break_token_rule: bool = Field(
        default=False,
        description=(
            "Bypass the output token limit for this call. Only use when a "
            "smaller query is not possible."
        ),
    )


class IpLookupArgs(ToolArgs):
    ip: str = Field(description="The IP address to look up")


class ShodanSearchArgs(ToolArgs):
    query: str = Field(description="Shodan search query")
    max_results: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum number of results to return (default: 10)",
    )


class DnsLookupArgs(ToolArgs):
    hostnames: list[str] = Field(
        min_length=1, description="List of hostnames to resolve to IP addresses"
    )


class ReverseDnsLookupArgs(ToolArgs):
    ips: list[str] = Field(
        min_length=1, description="List of IP addresses for reverse DNS lookup"
    )


class CveLookupArgs(ToolArgs):
    cve: str = Field(description="The CVE identifier to query (format: CVE-YYYY-NNNNN)")

    @field_validator("cve")
    @classmethod
    def _check_cve_id(cls, value: str) -> str:
        if not _CVE_ID.match(value):
            raise ValueError("Must be a valid CVE ID (e.g., CVE-2021-44228)")
        return value


class CpeLookupArgs(ToolArgs):
    product: str = Field(description="Product name to search for CPE entries")
    count: bool = Field(
        default=False, description="If true, returns only the total count of matching CPEs"
    )
    skip: int = Field(default=0, ge=0, description="Number of CPEs to skip (pagination)")
    limit: int = Field(
        default=1000, ge=0, le=1000, description="Maximum number of CPEs to return (max 1000)"
    )


class CvesByProductArgs(ToolArgs):
    cpe23: Optional[str] = Field(
        default=None,
        description="CPE 2.3 identifier (format: cpe:2.3:part:vendor:product:version)",
    )
    product: Optional[str] = Field(default=None, description="Product name to search for CVEs")
    count: bool = Field(
        default=False, description="If true, returns only the total count of matching CVEs"
    )
    is_kev: bool = Field(
        default=False, description="If true, returns only CVEs with the KEV flag set"
    )
    sort_by_epss: bool = Field(
        default=False, description="If true, sorts CVEs by EPSS score in descending order"
    )
    skip: int = Field(default=0, ge=0, description="Number of CVEs to skip (pagination)")
    limit: int = Field(default=1000, ge=0, le=1000, description="Maximum CVEs to return (max 1000)")
    start_date: Optional[str] = Field(
        default=None,
        description="Start date for filtering CVEs (format: YYYY-MM-DDTHH:MM:SS)",
    )
    end_date: Optional[str] = Field(
        default=None,
        description="End date for filtering CVEs (format: YYYY-MM-DDTHH:MM:SS)",
    )

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "CvesByProductArgs":
        if self.cpe23 and self.product:
            raise ValueError("Cannot specify both cpe23 and product. Use only one.")
        if not (self.cpe23 or self.product):
            raise ValueError("Must specify either cpe23 or product.")
        return self

    def upstream_params(self) -> dict:
        """Query parameters for /cves (override flag excluded)."""
        return self.model_dump(exclude={"break_token_rule"}, exclude_none=True)
