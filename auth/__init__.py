"""auth/ -- Authentication and authorization package for the ratings service.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or ratings/.
api/ and ratings/ import from auth/, not the other way around.
"""
