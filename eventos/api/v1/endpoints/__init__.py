# API endpoints
from . import auth, events, files, certificates, admin

__all__ = ["auth", "events", "files", "certificates", "admin"]
