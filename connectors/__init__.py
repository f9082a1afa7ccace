"""
connectors — OAuth integration with the Spotify Web API.

Handles:
  • OAuth2 auth-URL generation
  • Callback handling (code → token exchange)
  • Per-session token storage & refresh-once-and-retry
  • Fernet encryption of tokens held in sessions
"""
