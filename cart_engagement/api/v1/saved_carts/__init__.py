"""Saved carts"""
