"""
Forest Monitor configuration.
"""
