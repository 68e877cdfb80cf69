"""
connectors — Google OAuth integration.

Handles:
  • OAuth2 auth-URL generation (offline access, forced consent)
  • Callback handling (code → token exchange, profile email)
  • Per-user token storage, one record per application user
  • Per-call credential binding for Calendar API requests
"""
