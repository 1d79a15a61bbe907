"""
Yield optimizer: allocates a pooled stablecoin balance to the better paying of two lending protocols
"""
