"""auth/ -- Identity verification and session tokens for Predix.

Layer rule: auth/ imports stdlib, third-party libraries and core/ only.
It does NOT import from api/, web/, or db/.
api/ and web/ import from auth/, not the other way around.
"""
