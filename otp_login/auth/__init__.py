"""
Authentication Package

One-time passcode login against a hosted provider (Stytch), email or SMS.

Modules:
- routes: /login pages and form handlers
- flow: request-code and verify-code orchestration
- validation: form models, phone normalization
- stytch: REST client for the provider
- session: signed session cookie and the session gate dependencies

The authentication flow:
1. Caller submits an email address or phone number
2. Provider sends a code; a local user row is created if missing
3. Caller is redirected to /login/otp with the challenge in the query string
4. Caller submits the code; provider verifies it against the methodId
5. Middleware sets the session cookie and redirects to /profile
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
