"""Price alerts"""
