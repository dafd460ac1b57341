"""Abandoned cart recovery"""
