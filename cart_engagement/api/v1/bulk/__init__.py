"""Bulk cart operations"""
