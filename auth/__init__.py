"""
auth — Identity resolution.

Provides:
  • Bearer token verification (tokens are issued by the identity service)
  • ``get_current_user_id`` FastAPI dependency
  • Google account email → application user lookup
  • Signed OAuth ``state`` for CSRF protection
"""
