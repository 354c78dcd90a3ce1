"""
Providers module - hardware catalogs consumed by the project services
"""
