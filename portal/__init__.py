"""
Portal backend-data access layer.

Retrying API client, time-bounded caching and area hierarchy helpers used by
the account request and project proposal journeys.
"""
