"""Candidate registration and profile completion."""

from .profile import ProfileForm, ProfileService, extract_contact_details

__all__ = ["ProfileForm", "ProfileService", "extract_contact_details"]
