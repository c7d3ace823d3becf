from gfa_api.models.user import User
from gfa_api.models.event import Event
from gfa_api.models.registration import Registration

__all__ = ["User", "Event", "Registration"]
