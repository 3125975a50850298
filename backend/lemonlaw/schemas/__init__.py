"""
Lemon Law Fee Suite
API Schemas Module
"""
