# =============================================================================
# core/hosts.py  —  Host lookup & device search
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Fetches host records and search results from the main API and reshapes
#   them into compact, human-readable reports.
#
# THE SEPARATION OF "FETCH" AND "SUMMARIZE":
#   - fetch_host() / fetch_search() hit the network and return raw JSON
#   - summarize_host() / summarize_search() are pure; they only reshape
#   The summarize functions are what the tests exercise most.
# =============================================================================

from typing import Any

from core.shodan_client import ShodanApi, expect_mapping


async def fetch_host(api: ShodanApi, ip: str) -> dict:
    return expect_mapping(await api.get(f"/shodan/host/{ip}"), "host")


async def fetch_search(api: ShodanApi, query: str, max_results: int) -> dict:
    payload = await api.get("/shodan/host/search", {"query": query, "limit": max_results})
    return expect_mapping(payload, "search")


def _coordinates(record: dict) -> str:
    return f"{record.get('latitude')}, {record.get('longitude')}"


def summarize_host(raw: dict) -> dict:
    """Turn a /shodan/host/{ip} payload into the ip_lookup report.

    Services are listed per open port; the banner comes from the first
    service record on that port, if any.
    """
    services_data: list[dict] = raw.get("data") or []

    services = []
    for port in raw.get("ports") or []:
        service = next((d for d in services_data if d.get("port") == port), None)
        entry: dict[str, Any] = {
            "Port": port,
            "Protocol": (service or {}).get("transport") or "unknown",
            "Service": ((service or {}).get("data") or "").strip() or "No banner",
        }
        http = (service or {}).get("http")
        if http:
            entry["HTTP"] = {"Server": http.get("server"), "Title": http.get("title")}
        services.append(entry)

    cloud = services_data[0].get("cloud") if services_data else None
    if cloud:
        cloud_provider: Any = {
            "Provider": cloud.get("provider"),
            "Service": cloud.get("service"),
            "Region": cloud.get("region"),
        }
    else:
        cloud_provider = "Not detected"

    return {
        "IP Information": {
            "IP Address": raw.get("ip_str"),
            "Organization": raw.get("org"),
            "ISP": raw.get("isp"),
            "ASN": raw.get("asn"),
            "Last Update": raw.get("last_update"),
        },
        "Location": {
            "Country": raw.get("country_name"),
            "City": raw.get("city"),
            "Coordinates": _coordinates(raw),
            "Region": raw.get("region_code"),
        },
        "Services": services,
        "Cloud Provider": cloud_provider,
        "Hostnames": raw.get("hostnames") or [],
        "Domains": raw.get("domains") or [],
        "Tags": raw.get("tags") or [],
    }


def _summarize_match(match: dict) -> dict:
    location = match.get("location") or {}
    http = match.get("http")
    if http:
        web: Any = {
            "Server": http.get("server"),
            "Title": http.get("title"),
            "Robots.txt": "Present" if http.get("robots") else "Not found",
            "Sitemap": "Present" if http.get("sitemap") else "Not found",
        }
    else:
        web = "No HTTP information"

    return {
        "Basic Information": {
            "IP Address": match.get("ip_str"),
            "Organization": match.get("org"),
            "ISP": match.get("isp"),
            "ASN": match.get("asn"),
            "Last Update": match.get("timestamp"),
        },
        "Location": {
            "Country": location.get("country_name"),
            "City": location.get("city") or "Unknown",
            "Region": location.get("region_code") or "Unknown",
            "Coordinates": _coordinates(location),
        },
        "Service Details": {
            "Port": match.get("port"),
            "Transport": match.get("transport"),
            "Product": match.get("product") or "Unknown",
            "Version": match.get("version") or "Unknown",
            "CPE": match.get("cpe") or [],
        },
        "Web Information": web,
        "Hostnames": match.get("hostnames") or [],
        "Domains": match.get("domains") or [],
    }


def summarize_search(raw: dict, query: str) -> dict:
    total = raw.get("total") or 0
    matches = raw.get("matches") or []
    countries = (raw.get("facets") or {}).get("country") or []

    distribution = []
    for facet in countries:
        count = facet.get("count") or 0
        share = (count / total * 100) if total else 0.0
        distribution.append({
            "Country": facet.get("value"),
            "Count": count,
            "Percentage": f"{share:.2f}%",
        })

    return {
        "Search Summary": {
            "Query": query,
            "Total Results": total,
            "Results Returned": len(matches),
        },
        "Country Distribution": distribution,
        "Matches": [_summarize_match(m) for m in matches],
    }
