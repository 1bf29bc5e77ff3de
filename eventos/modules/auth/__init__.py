# Authentication module

from eventos.modules.auth.dependencies import (
    get_current_user,
    get_current_admin,
    get_current_actor,
    get_current_admin_actor,
)

__all__ = [
    "get_current_user",
    "get_current_admin",
    "get_current_actor",
    "get_current_admin_actor",
]
