"""
NGO Portal - Gateway

Mutation policy and HTTP middleware.
"""
