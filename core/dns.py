# =============================================================================
# core/dns.py  —  Forward & reverse DNS
# =============================================================================
#
# Both endpoints take a comma-separated batch and answer with a flat object:
#   /dns/resolve  {hostname: ip}
#   /dns/reverse  {ip: [hostname, ...]}
# =============================================================================

from core.shodan_client import ShodanApi, expect_mapping


async def fetch_resolutions(api: ShodanApi, hostnames: list[str]) -> dict:
    payload = await api.get("/dns/resolve", {"hostnames": ",".join(hostnames)})
    return expect_mapping(payload, "DNS resolve")


async def fetch_reverse(api: ShodanApi, ips: list[str]) -> dict:
    payload = await api.get("/dns/reverse", {"ips": ",".join(ips)})
    return expect_mapping(payload, "reverse DNS")


def summarize_resolutions(raw: dict, hostnames: list[str]) -> dict:
    return {
        "DNS Resolutions": [
            {"Hostname": hostname, "IP Address": ip} for hostname, ip in raw.items()
        ],
        "Summary": {
            "Total Lookups": len(raw),
            "Queried Hostnames": hostnames,
        },
    }


def summarize_reverse(raw: dict, ips: list[str]) -> dict:
    return {
        "Reverse DNS Resolutions": [
            {
                "IP Address": ip,
                "Hostnames": list(names) if names else ["No hostnames found"],
            }
            for ip, names in raw.items()
        ],
        "Summary": {
            "Total IPs Queried": len(ips),
            "IPs with Results": len(raw),
            "Queried IP Addresses": ips,
        },
    }
