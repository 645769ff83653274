"""
Top-level package for the EventHub API.

The package provides no public exports; all functionality lives in
submodules under ``app``.  Run the server with ``python -m eventhub_api``
or point an ASGI server at ``eventhub_api.app.main:app``.
"""

__all__ = []
