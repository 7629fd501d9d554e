from conftest import CVE, HOST, SEARCH

from core.dns import summarize_resolutions, summarize_reverse
from core.hosts import summarize_host, summarize_search
from core.vulns import cvss_severity, format_cve, summarize_cpes, summarize_cve, summarize_cves


def test_host_report_lists_services_per_port():
    report = summarize_host(HOST)

    assert report["IP Information"]["IP Address"] == "8.8.8.8"
    assert report["Location"]["Coordinates"] == "37.4056, -122.0775"
    dns_service, https_service = report["Services"]
    assert dns_service == {"Port": 53, "Protocol": "udp", "Service": "DNS recursion enabled"}
    assert https_service["HTTP"] == {
        "Server": "scaffolding on HTTPServer2",
        "Title": "Google Public DNS",
    }
    assert report["Cloud Provider"] == "Not detected"
    assert report["Hostnames"] == ["dns.google"]


def test_host_report_handles_port_without_service_record():
    raw = dict(HOST, ports=[22], data=[{"port": 80, "cloud": {"provider": "AWS"}}])

    report = summarize_host(raw)

    assert report["Services"] == [{"Port": 22, "Protocol": "unknown", "Service": "No banner"}]
    assert report["Cloud Provider"]["Provider"] == "AWS"


def test_search_report_country_percentages():
    report = summarize_search(SEARCH, "nginx")

    assert report["Search Summary"] == {
        "Query": "nginx",
        "Total Results": 200,
        "Results Returned": 1,
    }
    assert report["Country Distribution"][0] == {
        "Country": "DE",
        "Count": 150,
        "Percentage": "75.00%",
    }
    match = report["Matches"][0]
    assert match["Location"]["City"] == "Unknown"
    assert match["Web Information"]["Robots.txt"] == "Present"
    assert match["Web Information"]["Sitemap"] == "Not found"
    assert match["Service Details"]["Version"] == "Unknown"


def test_search_report_with_zero_total():
    report = summarize_search({"total": 0, "matches": []}, "nothing")

    assert report["Country Distribution"] == []
    assert report["Matches"] == []


def test_dns_reports():
    forward = summarize_resolutions({"example.com": "93.184.216.34"}, ["example.com"])
    reverse = summarize_reverse({"8.8.8.8": ["dns.google"], "10.0.0.1": []}, ["8.8.8.8", "10.0.0.1"])

    assert forward["DNS Resolutions"] == [{"Hostname": "example.com", "IP Address": "93.184.216.34"}]
    assert forward["Summary"]["Total Lookups"] == 1
    assert reverse["Reverse DNS Resolutions"][1]["Hostnames"] == ["No hostnames found"]
    assert reverse["Summary"]["IPs with Results"] == 2


def test_cvss_bands():
    assert cvss_severity(10.0) == "Critical"
    assert cvss_severity(9.0) == "Critical"
    assert cvss_severity(7.5) == "High"
    assert cvss_severity(4.0) == "Medium"
    assert cvss_severity(0.1) == "Low"
    assert cvss_severity(0.0) == "None"


def test_cve_report():
    report = summarize_cve(CVE)

    scores = report["Severity Scores"]
    assert scores["CVSS v3"] == {"Score": 10.0, "Severity": "Critical"}
    assert scores["EPSS"] == {"Score": "50.00%", "Ranking": "Top 25.00%"}
    assert report["Basic Information"]["Published"] == "2021-12-10 10:15:09"
    assert report["Impact Assessment"]["Known Exploited Vulnerability"] == "Yes"
    assert report["Affected Products"] == CVE["cpes"]


def test_cve_report_missing_fields():
    report = format_cve({"cve_id": "CVE-2000-0001"})

    assert report["Severity Scores"]["CVSS v2"] == "Not available"
    assert report["Severity Scores"]["EPSS"] == "Not available"
    assert report["References"] == ["No references provided"]
    assert report["Impact Assessment"]["Known Exploited Vulnerability"] == "No"


def test_cpe_report_count_and_list():
    assert summarize_cpes({"total": 42}, count=True, skip=0, limit=10) == {"total_cpes": 42}
    assert summarize_cpes({"cpes": ["a", "b"]}, count=False, skip=5, limit=10) == {
        "cpes": ["a", "b"],
        "skip": 5,
        "limit": 10,
        "total_returned": 2,
    }


def test_cves_report_paging_and_count():
    listing = summarize_cves(
        {"total": 3000, "cves": [CVE]},
        {"product": "log4j", "skip": 200, "limit": 100, "start_date": "2021-01-01T00:00:00"},
    )
    counted = summarize_cves({"total": 3000}, {"cpe23": "cpe:2.3:a:x:y", "count": True})

    assert listing["Results Summary"]["Page"] == "3"
    assert listing["Query Information"]["Date Range"] == "2021-01-01T00:00:00 to now"
    assert listing["Query Information"]["CPE 2.3"] == "N/A"
    assert len(listing["Vulnerabilities"]) == 1
    assert counted == {
        "Query Information": {
            "Product": "N/A",
            "CPE 2.3": "cpe:2.3:a:x:y",
            "KEV Only": "No",
            "Sort by EPSS": "No",
        },
        "Results": {"Total CVEs Found": 3000},
    }
