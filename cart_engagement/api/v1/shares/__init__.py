"""Cart sharing"""
