"""
Rating aggregator.

Responsibilities:
- Re-derive an oyster's canonical attributes and score from all of its reviews.
- Blend curated seed data with community data along a confidence ramp.
- Weight each review by its vote-derived score and its author's credibility.
- Batch backfill across the whole catalog.
"""
