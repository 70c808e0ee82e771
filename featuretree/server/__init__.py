# ============================================================================
# featuretree/server/__init__.py
# Server Package - FastAPI Web Server
# ============================================================================
#
# KEY ENDPOINTS:
# - GET/POST /api/features/status      per-feature pass/failed status
# - GET /api/features/status/{id}      single status lookup
# - /api/tree/...                      feature tree editing commands
# - GET /health                        liveness
#
# ============================================================================
