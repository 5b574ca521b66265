"""Authentication and authorization.

Learn: Users log in with email/password and receive two JWTs:
1. Access token (1 day) → sent as "Authorization: Bearer ..." on API calls
2. Refresh token (7 days) → only exchanged for a new access token

Administrators additionally present the shared admin secret when they
log in (the "admin step-up"). Refresh tokens are revocable: each one is
remembered server-side and logout deletes it.
"""
