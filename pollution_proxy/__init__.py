"""
Authenticated, cached proxy for the upstream pollution-by-city API.
"""
