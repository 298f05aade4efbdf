"""
Preference & recommendation engine.

Responsibilities:
- Infer a user's flavor preference vector from their baseline or their reviews.
- Maintain the explicit baseline as new favorable reviews arrive.
- Rank unreviewed oysters by flavor similarity, with a per-user TTL cache.
- Collaborative and hybrid rankings from users with similar taste.
- Per-user flavor ranges over favorable reviews.
"""
