"""catalog/ -- Product records, the ownership guard, and owner-scoped mutations.

Layer rule: catalog/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, auth/, or client/. Identities appear here only
as opaque owner id strings.
"""
