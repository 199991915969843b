"""auth/ -- Credential hashing, token issuance, and the custom-auth gateway.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, catalog/, or client/.
api/ imports from auth/, not the other way around.
"""
