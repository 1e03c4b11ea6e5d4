"""
Directus migrators and helpers.

This subpackage talks to the Directus files API (with rate limiting,
automatic retries and a binary-upload fallback), imports media exactly
once per URL, and migrates tags, collections, posts and post/tag links
into the content tables in dependency order.
"""
