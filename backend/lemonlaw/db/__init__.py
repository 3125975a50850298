"""
Lemon Law Fee Suite
Database Module
"""
