"""
Services module for modsync - cache, identity, update and content services
"""
