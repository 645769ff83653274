"""
Version 1 of the API.

All routers of this version are mounted under ``/api`` by
``main.create_app``.
"""
