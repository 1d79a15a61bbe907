"""
Yield optimizer contracts and the lending protocol mocks they are tested against
"""
