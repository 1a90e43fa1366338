"""auth/ -- Authentication and authorization package for BikeHub Accounts.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, accounts/, or core/. Configuration values are
passed in by the caller (see api/main.py lifespan), never read here.
api/ imports from auth/, not the other way around.
"""
