"""auth/ -- Authentication service core for SSO.

AuthService (service.py) verifies credentials, registers users and issues
app-scoped JWTs. It depends only on the Protocols in ports.py; store.py
and tokens.py are the production implementations.

Layer rule: auth/ imports stdlib, third-party libraries and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
