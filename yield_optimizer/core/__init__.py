"""
Core application support: logging, commands, services
"""
