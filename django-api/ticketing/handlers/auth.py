"""Trusted caller context supplied by the upstream gateway.

Credentials are verified before requests reach this service; the gateway
forwards the caller's identity in headers and this module only reads them.
"""

from dataclasses import dataclass
from enum import Enum

from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from ticketing.domain import UserId

USER_ID_HEADER = "HTTP_X_USER_ID"
USER_ROLE_HEADER = "HTTP_X_USER_ROLE"


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    ORGANIZER = "ORGANIZER"


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller. Stands in for `request.user`."""

    user_id: UserId
    role: Role

    is_authenticated = True
    is_anonymous = False


class GatewayHeaderAuthentication(BaseAuthentication):
    def authenticate(self, request: Request) -> tuple[AuthContext, None] | None:
        raw_id = request.META.get(USER_ID_HEADER)
        if not raw_id:
            return None
        try:
            user_id = UserId.from_string(raw_id)
            role = Role(request.META.get(USER_ROLE_HEADER, "").upper())
        except ValueError:
            raise exceptions.AuthenticationFailed("Invalid caller identity headers")
        return AuthContext(user_id=user_id, role=role), None

    def authenticate_header(self, request: Request) -> str:
        return "Gateway"


class IsCustomer(BasePermission):
    message = "Only customers can perform this action"

    def has_permission(self, request, view) -> bool:
        user = request.user
        return isinstance(user, AuthContext) and user.role is Role.CUSTOMER


class IsOrganizer(BasePermission):
    message = "Only organizers can perform this action"

    def has_permission(self, request, view) -> bool:
        user = request.user
        return isinstance(user, AuthContext) and user.role is Role.ORGANIZER
