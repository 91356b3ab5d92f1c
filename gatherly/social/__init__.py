"""Friendships, invitations, activities and the activity feed."""
