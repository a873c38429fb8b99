"""
Auth — resolve the calling user from the browser's Supabase session.

The resolved user id is the only owner id the rest of the service ever
uses; nothing client-supplied is trusted for ownership.
"""

from personal_brain.auth.session import AuthenticatedUser, AuthGate, SupabaseAuthGate

__all__ = ["AuthGate", "AuthenticatedUser", "SupabaseAuthGate"]
