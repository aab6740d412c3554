"""
Services - evidence aggregation, judgment, parsing, persistence, and usage tracking.
"""
