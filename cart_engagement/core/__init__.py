"""Core configuration, errors and scheduling"""
