"""
Lemon Law Fee Suite
Core Configuration
"""
