# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains the framework-agnostic logic of the gateway.
#
# CRITICAL ARCHITECTURAL RULE:
#   Nothing in this package imports the protocol layer (gateway/) or the tool
#   table (tools/).  Modules here know about the upstream HTTP API, the shape
#   of the reports handed back to the client, and the output budget.  Nothing
#   else.
#
#   - config.py        environment-driven settings
#   - errors.py        exception hierarchy
#   - models.py        result / budget dataclasses
#   - token_budget.py  Output Budget Guard
#   - shodan_client.py async upstream client (main API + CVE database)
#   - hosts.py, dns.py, vulns.py   fetch + summarize, one module per API area
# =============================================================================
