"""Cart analytics"""
