# =============================================================================
# core/vulns.py  —  Vulnerability intelligence (CVE database)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Talks to the public CVE database: single CVE records, CPE search, and
#   CVEs by product/CPE.  The reports turn raw scores into something a
#   reader can act on: a severity band next to every CVSS score, EPSS as a
#   percentage, KEV as Yes/No.
#
# PAGINATION:
#   cpe_lookup and cves_by_product pass skip/limit straight through.  With
#   count=true the upstream returns only a total, and the report shrinks
#   to match.  That is the cheapest way to size a query before fetching it.
# =============================================================================

from datetime import datetime
from typing import Any, Optional

from core.shodan_client import ShodanApi, expect_mapping

NOT_AVAILABLE = "Not available"


async def fetch_cve(api: ShodanApi, cve_id: str) -> dict:
    return expect_mapping(await api.get_cvedb(f"/cve/{cve_id.upper()}"), "CVE")


async def fetch_cpes(api: ShodanApi, product: str, count: bool, skip: int, limit: int) -> dict:
    payload = await api.get_cvedb(
        "/cpes", {"product": product, "count": count, "skip": skip, "limit": limit}
    )
    return expect_mapping(payload, "CPE")


async def fetch_cves(api: ShodanApi, params: dict) -> dict:
    return expect_mapping(await api.get_cvedb("/cves", params), "CVE search")


def cvss_severity(score: float) -> str:
    """Map a CVSS base score to its qualitative band."""
    if score >= 9.0:
        return "Critical"
    if score >= 7.0:
        return "High"
    if score >= 4.0:
        return "Medium"
    if score >= 0.1:
        return "Low"
    return "None"


def _format_published(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def _score(value: Optional[float]) -> Any:
    if not value:
        return NOT_AVAILABLE
    return {"Score": value, "Severity": cvss_severity(value)}


def format_cve(cve: dict) -> dict:
    epss = cve.get("epss")
    if epss:
        epss_info: Any = {
            "Score": f"{epss * 100:.2f}%",
            "Ranking": f"Top {(cve.get('ranking_epss') or 0) * 100:.2f}%",
        }
    else:
        epss_info = NOT_AVAILABLE

    return {
        "Basic Information": {
            "CVE ID": cve.get("cve_id"),
            "Published": _format_published(cve.get("published_time")),
            "Summary": cve.get("summary"),
        },
        "Severity Scores": {
            "CVSS v3": _score(cve.get("cvss_v3")),
            "CVSS v2": _score(cve.get("cvss_v2")),
            "EPSS": epss_info,
        },
        "Impact Assessment": {
            "Known Exploited Vulnerability": "Yes" if cve.get("kev") else "No",
            "Proposed Action": cve.get("propose_action") or "No specific action proposed",
            "Ransomware Campaign": cve.get("ransomware_campaign") or "No known ransomware campaigns",
        },
        "References": cve.get("references") or ["No references provided"],
    }


def summarize_cve(raw: dict) -> dict:
    report = format_cve(raw)
    report["Affected Products"] = raw.get("cpes") or ["No specific products listed"]
    return report


def summarize_cpes(raw: dict, count: bool, skip: int, limit: int) -> dict:
    if count:
        return {"total_cpes": raw.get("total")}
    cpes = raw.get("cpes") or []
    return {
        "cpes": cpes,
        "skip": skip,
        "limit": limit,
        "total_returned": len(cpes),
    }


def summarize_cves(raw: dict, params: dict) -> dict:
    """Build the cves_by_product report.

    ``params`` is the query that was sent, used to echo the filters back and
    to compute the page number.
    """
    query_info: dict[str, Any] = {
        "Product": params.get("product") or "N/A",
        "CPE 2.3": params.get("cpe23") or "N/A",
        "KEV Only": "Yes" if params.get("is_kev") else "No",
        "Sort by EPSS": "Yes" if params.get("sort_by_epss") else "No",
    }

    if params.get("count"):
        return {
            "Query Information": query_info,
            "Results": {"Total CVEs Found": raw.get("total")},
        }

    start_date = params.get("start_date")
    if start_date:
        query_info["Date Range"] = f"{start_date} to {params.get('end_date') or 'now'}"
    else:
        query_info["Date Range"] = "All dates"

    skip = params.get("skip") or 0
    limit = params.get("limit") or 1000
    cves = raw.get("cves") or []
    return {
        "Query Information": query_info,
        "Results Summary": {
            "Total CVEs Found": raw.get("total"),
            "CVEs Returned": len(cves),
            "Page": str(skip // limit + 1),
            "CVEs per Page": limit,
        },
        "Vulnerabilities": [format_cve(c) for c in cves],
    }
