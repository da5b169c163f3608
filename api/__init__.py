"""
Forest Monitor proxy API.
"""
