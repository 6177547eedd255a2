"""
Core diagnosis components.
"""
