"""
Blog posts.

- Filtered, paginated listing (search / status / category / tag / author)
- Create, edit and delete limited to the author or a posts.manage_any holder
- Categories and tags are replaced as a whole set when sent on update
"""
