"""Routing: route table and namespace (mount) resolution.

Both are compiled from a ``KernelConfig`` into immutable lookup structures
when the configuration is loaded, and swapped together on reload.
"""
