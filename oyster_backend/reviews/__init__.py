"""
Review mutation pipeline: create, edit and delete reviews, then run the
credibility, rating, baseline, range and cache updates that follow.
"""
