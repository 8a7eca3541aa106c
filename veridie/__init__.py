"""Veridie API - mentorship marketplace backend"""
