"""
Central constants for the CMS application.
"""
from __future__ import annotations

# Role keys (a user without any role is an implicit viewer)
ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"

PERMISSIONS = {
    "posts.manage_any": "Posts: edit/delete any author's posts",
    "categories.manage": "Categories: create/edit/delete",
    "tags.manage": "Tags: create/edit/delete",
    "team.manage": "Team: create/edit/delete members",
}

ROLE_NAMES = {
    ROLE_ADMIN: "Administrator",
    ROLE_EDITOR: "Editor",
}

ROLE_PERMISSIONS = {
    ROLE_ADMIN: ("posts.manage_any", "categories.manage", "tags.manage", "team.manage"),
    ROLE_EDITOR: ("categories.manage", "tags.manage"),
}

POST_STATUSES = ("DRAFT", "PENDING_REVIEW", "PUBLISHED", "SCHEDULED")

# Default page sizes per collection
POSTS_PAGE_SIZE = 10
MEDIA_PAGE_SIZE = 20
TAXONOMY_PAGE_SIZE = 20
TEAM_PAGE_SIZE = 20
