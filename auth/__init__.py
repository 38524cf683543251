"""auth/ -- Credential store, password hashing, tokens and account flows for passgate.

Layer rule: auth/ imports only stdlib + third-party libraries (and core/ for
typing). It does NOT import from api/. api/ imports from auth/, not the
other way around. auth/dependencies.py is the one FastAPI-aware module.
"""
