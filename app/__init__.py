"""
FastAPI Application Package

This package contains the gateway application: the lifespan that installs and
activates the offline cache, the gateway's own endpoints, and the catch-all
route that hands every other request to the cache manager.
"""
