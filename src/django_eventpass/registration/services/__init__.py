"""Stateless services for registration creation and payment settlement."""
