"""
Yield optimizer simulation shell
"""
