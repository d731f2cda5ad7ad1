from starlette.types import ASGIApp, Message, Receive, Scope, Send

_BASE_HEADERS: list[tuple[bytes, bytes]] = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"no-referrer"),
    (b"cross-origin-opener-policy", b"same-origin"),
]
_HSTS = (b"strict-transport-security", b"max-age=63072000; includeSubDomains")


class SecurityHeadersMiddleware:
    """Add default security headers; uploaded documents stay embeddable by the dashboard origin."""

    def __init__(self, app: ASGIApp, enable_hsts: bool = True, uploads_path: str = "/uploads") -> None:
        self.app = app
        self.enable_hsts = enable_hsts
        self.uploads_path = uploads_path.rstrip("/") + "/"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        is_upload = scope.get("path", "").startswith(self.uploads_path)
        resource_policy = b"cross-origin" if is_upload else b"same-origin"

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                defaults = list(_BASE_HEADERS)
                defaults.append((b"cross-origin-resource-policy", resource_policy))
                if self.enable_hsts:
                    defaults.append(_HSTS)

                headers = list(message.get("headers", []))
                existing = {key.lower() for key, _ in headers}
                headers.extend((key, value) for key, value in defaults if key not in existing)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)
