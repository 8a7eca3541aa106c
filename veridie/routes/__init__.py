"""HTTP routes that are not part of a domain package"""
