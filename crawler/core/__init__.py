"""
Core crawl loop: the per-source pipeline, the worker and their wiring.
"""
