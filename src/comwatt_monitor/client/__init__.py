"""HTTP client for the Comwatt energy API."""

from comwatt_monitor.client.api import ComwattApi, Session
from comwatt_monitor.client.errors import ApiError, GenericError, HttpError, SerializationError
from comwatt_monitor.client.password import Password

__all__ = [
    "ApiError",
    "ComwattApi",
    "GenericError",
    "HttpError",
    "Password",
    "SerializationError",
    "Session",
]
