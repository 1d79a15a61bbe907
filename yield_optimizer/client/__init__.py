"""
Client side support for interacting with deployed contracts
"""
