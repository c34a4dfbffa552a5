"""
Search schema, query and index package.

- schema: Field types and schema definitions rendered to ``FT.CREATE``
- predicates: Leaf predicates and AND / OR groups rendered to query strings
- query: Query builder serialized to ``FT.SEARCH`` arguments
- results: Structured views over positional search replies
- index: Index handle binding a schema, storage type and key prefix
"""
