"""
Distributed RSS crawler: work coordination, the per-source pipeline and the worker loop.
"""
