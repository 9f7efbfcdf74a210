"""
Method-surface bundles.

Each module is a set of async operations over a BoundQuery that model
implementations compose with db_init():
- generic_methods: single-entity CRUD
- collection_methods: listing, bulk writes, counting
- map_methods: key-indexed get/set/delete over a relation
"""
