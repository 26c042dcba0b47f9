from starlette.datastructures import Headers

from chrono.config import as_holder, config_from_env
from chrono.timing import RequestRecord, log_request, measure_async, should_skip


ERRORS_KEY = "chrono_errors"


def record_error(request, error):
    """Attach an error summary to the request's timing line."""
    errors = request.scope.setdefault("state", {}).setdefault(ERRORS_KEY, [])
    errors.append(str(error))


def client_address(scope, headers: Headers, trust_forwarded=False) -> str:
    if trust_forwarded:
        forwarded = headers.get("x-forwarded-for", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    client = scope.get("client")
    return client[0] if client else ""


class TimingMiddleware:
    """
    Pure ASGI timing middleware. The status is taken from the
    ``http.response.start`` message and the line is logged once the app has
    returned, so streamed bodies count toward the duration.
    """

    def __init__(self, app, config=None):
        self.app = app
        self.holder = as_holder(config if config is not None else config_from_env())

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        config = self.holder.current
        if not config.enabled or should_skip(scope["path"], config):
            await self.app(scope, receive, send)
            return

        errors = []
        scope.setdefault("state", {})[ERRORS_KEY] = errors
        status_code = None

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        _, duration = await measure_async(self.app, scope, receive, send_wrapper)

        headers = Headers(scope=scope)
        record = RequestRecord(
            status=status_code if status_code is not None else 500,
            duration=duration,
            client_addr=client_address(scope, headers, config.trust_forwarded_headers),
            method=scope["method"],
            path=scope["path"],
            user_agent=headers.get("user-agent") if config.log_user_agent else None,
            errors=list(errors),
        )
        log_request(record, config)


def new(config=None):
    """Return an ``app`` wrapper bound to ``config``."""
    holder = as_holder(config)

    def middleware(app):
        return TimingMiddleware(app, config=holder)

    return middleware
