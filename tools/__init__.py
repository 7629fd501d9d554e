# =============================================================================
# tools/__init__.py
# =============================================================================
# This package is the tool layer: the seven lookup operations the gateway
# exposes to MCP clients.
#
# ARCHITECTURAL ROLE:
#   tools/ sits between the protocol engine (gateway/) and the upstream logic
#   in core/.  Each call runs the same fixed pipeline:
#     1. Validate the arguments against the tool's pydantic model
#     2. Fetch from the upstream API (core/hosts.py, dns.py, vulns.py)
#     3. Reshape the payload into a compact report
#     4. Enforce the output budget before anything reaches the client
#
#   - schemas.py   argument models; their JSON schema is the tool's inputSchema
#   - pipeline.py  LookupPipeline: validate, fetch, summarize, guard, render
#   - registry.py  handler functions and the name -> ToolSpec table
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT speak JSON-RPC (that's gateway/engine.py)
#   - They do NOT know which session they serve
#   - They do NOT raise to the caller: every failure becomes a ToolResult
#
# TOOL CONTRACT QUALITY:
#   The description on each ToolSpec is what the client's model reads to
#   decide WHEN to call a tool.  Keep them specific.
# =============================================================================
