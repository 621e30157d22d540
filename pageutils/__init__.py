"""Backend helpers: pagination, parent/child assembly and response envelopes.

- pagination: page metadata (paginate) and layui-style count + window (paginate_by_source)
- hierarchy: two-level parent/children trees over one collection
- source: data source protocol and its PostgreSQL implementation
- utils: response envelopes, parameter binding, signing, membership
"""
