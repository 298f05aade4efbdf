"""
Persistence layer.

Responsibilities:
- Declare the relational schema (oysters, reviews, votes, users, favorites).
- Provide the engine, session factory and request-scoped session dependency.
- Offer a single ``atomic()`` scope for multi-row transactional writes.
"""
