"""
Account services.
"""
