"""
Data queries
"""
