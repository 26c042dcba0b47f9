from chrono.config import as_holder, config_from_settings
from chrono.timing import RequestRecord, log_request, measure, should_skip


ERRORS_ATTR = "_chrono_errors"


def record_error(request, error):
    """Attach an error summary to the request's timing line."""
    errors = getattr(request, ERRORS_ATTR, None)
    if errors is None:
        errors = []
        setattr(request, ERRORS_ATTR, errors)
    errors.append(str(error))


def client_address(request, trust_forwarded=False) -> str:
    meta = request.META
    if trust_forwarded:
        forwarded = meta.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = meta.get("HTTP_X_REAL_IP", "").strip()
        if real_ip:
            return real_ip
    return meta.get("REMOTE_ADDR", "")


class TimingMiddleware:
    """
    Logs how long each request took, classified against the configured
    thresholds. Without an explicit config it reads ``settings.CHRONO``.
    """

    def __init__(self, get_response, config=None):
        self.get_response = get_response
        self.holder = as_holder(config if config is not None else config_from_settings())

    def __call__(self, request):
        config = self.holder.current
        if not config.enabled or should_skip(request.path, config):
            return self.get_response(request)

        setattr(request, ERRORS_ATTR, [])
        response, duration = measure(self.get_response, request)

        record = RequestRecord(
            status=response.status_code,
            duration=duration,
            client_addr=client_address(request, config.trust_forwarded_headers),
            method=request.method,
            path=request.path,
            user_agent=request.META.get("HTTP_USER_AGENT") if config.log_user_agent else None,
            errors=list(getattr(request, ERRORS_ATTR, ())),
        )
        log_request(record, config)
        return response

    def process_exception(self, request, exception):
        # Django turns the exception into a response after this returns None.
        record_error(request, f"{type(exception).__name__}: {exception}")
        return None


def new(config=None):
    """Return a ``get_response`` wrapper bound to ``config``, for MIDDLEWARE."""
    holder = as_holder(config)

    def middleware(get_response):
        return TimingMiddleware(get_response, config=holder)

    return middleware
