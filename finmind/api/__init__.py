"""HTTP API package."""

from finmind.api.app import create_app, current_user_id

__all__ = ["create_app", "current_user_id"]
