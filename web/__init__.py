"""
Web interface for the nearby search engine.
"""
