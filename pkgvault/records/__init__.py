"""pkgvault Records — users, roles, posts and profiles."""

from pkgvault.records.service import PostService, ProfileService, RoleService, UserService

__all__ = ["UserService", "RoleService", "PostService", "ProfileService"]
