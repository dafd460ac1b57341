"""Cart recommendations"""
