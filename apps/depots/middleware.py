from urllib.parse import parse_qs
from django.contrib.auth.models import AnonymousUser
from rest_framework.authtoken.models import Token
from channels.db import database_sync_to_async

AUTH_SCHEME = b"token"


def token_from_scope(scope):
    """
    Token key of a websocket handshake: an ``Authorization: Token <key>``
    header wins over a ``?token=`` query parameter. None when neither is sent.
    """
    for name, value in scope.get("headers", []):
        if name.lower() != b"authorization":
            continue
        parts = value.split()
        if len(parts) == 2 and parts[0].lower() == AUTH_SCHEME:
            return parts[1].decode()

    query = parse_qs(scope.get("query_string", b"").decode())
    keys = query.get("token")
    return keys[0] if keys else None


@database_sync_to_async
def get_user(token_key):
    token = Token.objects.select_related("user").filter(key=token_key).first()
    if token is None or not token.user.is_active:
        return AnonymousUser()
    return token.user


class TokenAuthMiddleware:
    """Puts the token's user (or AnonymousUser) on the websocket scope."""

    def __init__(self, inner):
        self.inner = inner

    async def __call__(self, scope, receive, send):
        token_key = token_from_scope(scope)

        scope = dict(scope)
        scope["user"] = await get_user(token_key) if token_key else AnonymousUser()

        return await self.inner(scope, receive, send)
