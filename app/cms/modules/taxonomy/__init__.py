"""
Categories and tags: named, slugged terms attached to posts.
"""
