"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area: organizations,
profiles, content/playlists/assignments, news and Q&A, and analytics records.
"""
