"""
HTTP layer.

Versions live in subpackages (currently only ``v1``), each exposing a
``router`` that ``main.create_app`` mounts on the application.
"""
