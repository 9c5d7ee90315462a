"""
Spatial schema services: dialect probing, type model, catalog
introspection, DDL generation and the schema event router.
"""
