"""auth/ -- Authentication and credential lifecycle for Lot Market.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or lots/.
api/ imports from auth/, not the other way around.
"""
