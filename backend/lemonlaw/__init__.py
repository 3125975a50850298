"""
Lemon Law Fee Suite
"""
