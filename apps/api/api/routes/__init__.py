"""HTTP routers of the help center API."""

from . import addresses, admin_help, admin_support, help, onboarding, ping, support

__all__ = ["addresses", "admin_help", "admin_support", "help", "onboarding", "ping", "support"]
