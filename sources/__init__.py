"""
Community page sources.
"""
