"""
extpublish - publish browser-extension releases from GitHub to extension stores.
"""
