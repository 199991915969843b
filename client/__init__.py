"""client/ -- Client-side session state fed by an external identity provider.

SessionManager is the one authority for "who is logged in" in a client
process. Identity providers and the profile table are reached through the
protocols in client/provider.py; client/supabase_provider.py adapts the
Supabase async client to them.

Layer rule: client/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, auth/, or catalog/.
"""
