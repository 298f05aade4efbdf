"""
Vote & credibility ledger.

Responsibilities:
- Record agree/disagree votes on reviews, one per voter per review.
- Keep review and reviewer counters consistent inside one transaction.
- Derive each review's weighted score and each reviewer's credibility.
- Map credibility to a display badge.
"""
