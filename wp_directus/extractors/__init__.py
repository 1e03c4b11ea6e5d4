"""
Readers for the WordPress export.

This subpackage streams posts out of the ``wp_posts.csv`` dump, loads the
JSON side files describing tags and categories, and scans post content
for the uploads it references.
"""
