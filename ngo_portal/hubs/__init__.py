"""
NGO Portal - Hubs

Thematic hubs and their membership applications.
"""
