"""
Data access helpers.

- store: listings, slugs, tags, full-text and geospatial queries
- user: accounts, password reset tokens, hearts
- review: store reviews
"""
