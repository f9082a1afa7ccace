"""
auth — session identity carried by the caller.

Provides:
  • HMAC signing / verification of session ids
"""
